"""
SentenceTransformer 模型加载器

用处：加载 sentence-transformers 模型，供技能记录与查询的向量化共用。
"""

from __future__ import annotations

import logging
from typing import Any

import torch

from .base import LoaderConfig, ModelLoaderBase, ModelType

logger = logging.getLogger(__name__)


class SentenceTransformerLoader(ModelLoaderBase):
    """SentenceTransformer 模型加载器"""

    def load(self, config: LoaderConfig) -> Any:
        """加载 SentenceTransformer 模型

        Args:
            config: 加载器配置，model_name 为模型路径或 HuggingFace 名称

        Returns:
            Any: SentenceTransformer 模型实例
        """
        try:
            from sentence_transformers import SentenceTransformer
        except ImportError:
            raise RuntimeError("sentence-transformers 库未安装，请安装: pip install sentence-transformers")

        device = config.device
        if device == "auto":
            device = resolve_device()

        try:
            model = SentenceTransformer(
                config.model_name,
                device=device,
                cache_folder=config.kwargs.get("cache_folder"),
            )
        except Exception as e:
            raise RuntimeError(f"加载 SentenceTransformer 模型失败: {e}")

        logger.debug(f"SentenceTransformer 模型加载成功: {config.model_name}, 设备: {device}")
        return model

    def get_supported_type(self) -> ModelType:
        return ModelType.SENTENCE_TRANSFORMER


def resolve_device(preferred: str = "auto") -> str:
    """确定计算设备

    Returns:
        str: 'cuda' / 'mps' / 'cpu'；非 auto 时原样返回
    """
    if preferred != "auto":
        return preferred
    if torch.cuda.is_available():
        return "cuda"
    if hasattr(torch.backends, 'mps') and torch.backends.mps.is_available():
        return "mps"  # Apple Silicon
    return "cpu"
