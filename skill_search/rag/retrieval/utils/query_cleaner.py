from __future__ import annotations

"""
查询侧轻量清洗工具（仅作用于 query，不修改库内记录）。

职责与原则：
- 统一规范：Unicode NFKC、去控制字符、空白归一化、常见全角标点统一。
- 单一职责：不做语义改写，也不转义 tantivy 查询语法。
- 可配置启用：通过 app_config.json > retrieval.clean_query 开关控制（缺省启用）。
"""

from typing import Dict
import re
import unicodedata

_PUNCTUATION_MAP: Dict[int, int] = {
    ord("“"): ord('"'), ord("”"): ord('"'),
    ord("‘"): ord("'"), ord("’"): ord("'"),
    ord("（"): ord("("), ord("）"): ord(")"),
    ord("，"): ord(","), ord("。"): ord("."), ord("："): ord(":"),
    ord("；"): ord(";"), ord("！"): ord("!"), ord("？"): ord("?"),
    ord("【"): ord("["), ord("】"): ord("]"),
}


def _strip_control_chars(text: str) -> str:
    """移除不可见控制字符；制表符与换行先保留，交给空白归一化处理。"""
    return "".join(ch for ch in text if ch.isprintable() or ch in "\t\n\r")


def _normalize_whitespace(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def clean_query_basic(text: str) -> str:
    """对查询做轻量规范化清洗（不做语义修改）。

    Args:
        text: 原始查询字符串
    Returns:
        规范化后的查询字符串
    """
    s = unicodedata.normalize("NFKC", text or "")
    s = _strip_control_chars(s)
    s = s.translate(_PUNCTUATION_MAP)
    return _normalize_whitespace(s)
