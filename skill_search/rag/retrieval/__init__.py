"""
检索层模块入口。

职责：
- 暴露全文索引、混合检索服务与检索结果模型。
"""

from .config import RetrievalConfig
from .schemas import IndexHit, SearchHit
from .text_index import TextIndex
from .hybrid import RetrievalService

__all__ = [
    "RetrievalConfig",
    "IndexHit",
    "SearchHit",
    "TextIndex",
    "RetrievalService",
]
