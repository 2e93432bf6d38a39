from __future__ import annotations

"""
混合检索服务：向量召回优先，无结果时回退到全文索引（或记录库模糊匹配）。

流程：
- 有向量时：编码查询 → 余弦近邻召回 2*limit 个候选 → 分数 1 - 距离 → 取前 limit
- 向量结果为空（无向量、编码失败或确实无命中）：全文索引检索，分数按名次 1 - 0.1*rank
- 未接入全文索引时：记录库 LIKE 扫描兜底
- 所有命中都用记录库补全；记录已不存在的命中直接丢弃

说明：
- 只负责检索与结果拼装，不负责同步与索引重建
- QueryError（查询语法错误）原样向上抛出
"""

from typing import List, Optional, Protocol, Sequence

from skill_search.core.exceptions import EncoderError
from skill_search.core.models import SkillRecord
from skill_search.infra.database.record_store import RecordStore
from skill_search.infra.logging import get_logger
from .config import RetrievalConfig
from .schemas import MatchSource, SearchHit
from .text_index import TextIndex
from .utils.query_cleaner import clean_query_basic
from .utils.scoring import score_from_cosine_distance, score_from_rank


class QueryEncoder(Protocol):
    """查询编码能力（Embedder 满足该协议）"""

    def embed_query(self, text: str) -> Sequence[float]: ...


def _to_hit(record: SkillRecord, score: float, matched_by: MatchSource) -> SearchHit:
    return SearchHit(
        slug=record.slug,
        name=record.name,
        registry=record.registry,
        description=record.description,
        github_url=record.github_url,
        stars=record.stars,
        trusted=record.trusted,
        score=score,
        matched_by=matched_by,
    )


class RetrievalService:
    """
    混合检索服务。

    用处：对外提供 search(query, limit, registry) 单一入口，内部决定走向量召回还是全文回退。

    职责：
    - 查询清洗
    - 向量召回与分数映射
    - 全文 / 模糊匹配回退
    - 用记录库补全结果字段

    不负责：
    - 可信过滤与二次截断（由 CatalogService 负责）
    """

    def __init__(
        self,
        store: RecordStore,
        encoder: Optional[QueryEncoder] = None,
        text_index: Optional[TextIndex] = None,
        config: Optional[RetrievalConfig] = None,
    ):
        self.store = store
        self.encoder = encoder
        self.text_index = text_index
        self.config = config or RetrievalConfig()
        self.logger = get_logger(__name__)

    def search(self, query: str, limit: int, registry: Optional[str] = None) -> List[SearchHit]:
        """
        执行混合检索。

        Args:
            query: 查询文本
            limit: 返回数量上限；<= 0 时返回空列表
            registry: 可选的注册源精确过滤

        Returns:
            List[SearchHit]: 按分数降序，最多 limit 条

        Raises:
            QueryError: 全文回退时查询语法错误
            StorageError: 记录库或索引 I/O 失败
        """
        if limit <= 0:
            return []

        q = clean_query_basic(query) if self.config.clean_query else (query or "")
        if not q.strip():
            return []

        hits = self._vector_search(q, limit, registry)
        if hits:
            return hits

        self.logger.debug(f"向量检索无结果，回退到全文检索: {q!r}")
        if self.text_index is not None:
            return self._text_search(q, limit, registry)
        return self._fuzzy_search(q, limit, registry)

    def _vector_search(self, query: str, limit: int, registry: Optional[str]) -> List[SearchHit]:
        if self.encoder is None or self.store.embedding_count() == 0:
            return []

        try:
            vector = self.encoder.embed_query(query)
        except EncoderError as e:
            self.logger.warning(f"查询编码失败，按无向量结果处理: {e}")
            return []

        candidates = self.store.vector_search(vector, limit * self.config.candidate_multiplier, registry)
        hits: List[SearchHit] = []
        for record_id, distance in candidates:
            record = self.store.get_by_id(record_id)
            if record is None:
                continue
            hits.append(_to_hit(record, score_from_cosine_distance(distance), "vector"))
            if len(hits) >= limit:
                break
        return hits

    def _text_search(self, query: str, limit: int, registry: Optional[str]) -> List[SearchHit]:
        hits: List[SearchHit] = []
        for rank, index_hit in enumerate(self.text_index.search(query, limit, registry)):
            record = self.store.get(index_hit.registry, index_hit.slug)
            if record is None:
                continue
            hits.append(_to_hit(record, score_from_rank(rank, self.config.rank_step), "text"))
        return hits

    def _fuzzy_search(self, query: str, limit: int, registry: Optional[str]) -> List[SearchHit]:
        # 记录库扫描不支持注册源过滤，先多取候选再过滤
        fetch = limit * self.config.candidate_multiplier if registry else limit
        records = [
            r for r in self.store.fuzzy_search(query, fetch)
            if registry is None or r.registry == registry
        ]
        return [
            _to_hit(record, score_from_rank(rank, self.config.rank_step), "fuzzy")
            for rank, record in enumerate(records[:limit])
        ]
