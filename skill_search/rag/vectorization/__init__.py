"""
向量化层模块入口。

职责：
- 定义并暴露向量化配置、嵌入器与向量索引器。
- 仅负责“文本→向量→入库”，不含检索/回退逻辑。
"""

from .config import VectorizationConfig
from .embedder import Embedder, get_shared_embedder
from .indexer import EmbeddingIndexer

__all__ = [
    "VectorizationConfig",
    "Embedder",
    "get_shared_embedder",
    "EmbeddingIndexer",
]
