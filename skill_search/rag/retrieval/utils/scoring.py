"""
检索打分映射工具。

职责：
- 向量命中：余弦距离 d → 1 - d
- 全文命中：按名次线性递减 → 1 - step * rank（rank 从 0 开始）
"""

from __future__ import annotations


def score_from_cosine_distance(distance: float) -> float:
    """余弦距离映射为相似度分数（距离 0 得 1.0）。

    Args:
        distance: 向量库返回的余弦距离，取值 [0, 2]。

    Returns:
        1 - distance，不做裁剪，保持与距离严格单调。
    """
    return 1.0 - float(distance)


def score_from_rank(rank: int, step: float = 0.1) -> float:
    """按名次给出分数：第 0 名 1.0，之后每名递减 step。"""
    return 1.0 - float(step) * int(rank)
