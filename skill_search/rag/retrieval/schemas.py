from __future__ import annotations

"""
检索层数据结构定义（Pydantic 模型）。

设计原则：
- IndexHit 是全文索引的原始命中，只含索引中存储的字段；
- SearchHit 是混合检索对外的统一结果，已用记录库补全；
- 两者结构相近但分属不同层次，不互相复用。
"""

from typing import Literal
from pydantic import BaseModel

MatchSource = Literal["vector", "text", "fuzzy"]


class IndexHit(BaseModel):
    """全文索引的单条命中。"""

    slug: str
    name: str
    description: str = ""
    registry: str
    score: float

    @property
    def unique_key(self) -> str:
        return f"{self.registry}:{self.slug}"


class SearchHit(BaseModel):
    """混合检索的单条结果。"""

    slug: str
    name: str
    registry: str
    description: str = ""
    github_url: str = ""
    stars: int = 0
    trusted: bool = False
    score: float
    matched_by: MatchSource = "vector"

    @property
    def unique_key(self) -> str:
        return f"{self.registry}:{self.slug}"
