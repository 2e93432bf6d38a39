from __future__ import annotations

"""
目录服务：命令行各子命令的统一编排入口。

职责：
- 按配置与数据目录装配记录库、全文索引、向量化模型、检索服务与同步协调器
- 提供 ensure_synced / sync / search / show / url / top 六个操作

注意：
- 向量化模型懒加载，show / url / top 不会触发模型加载
- sync 完成后总是全量重建全文索引
"""

from pathlib import Path
from typing import List, Optional, Sequence

from skill_search.config import StorageConfig, get_config_manager
from skill_search.core.models import SkillRecord
from skill_search.infra.database.record_store import RecordStore
from skill_search.infra.logging import get_logger
from skill_search.rag.data_ingestion.sources.base import RegistrySource
from skill_search.rag.data_ingestion.sources.factory import build_sources
from skill_search.rag.data_ingestion.sync import SyncCoordinator, SyncReport
from skill_search.rag.retrieval import RetrievalConfig, RetrievalService, SearchHit, TextIndex
from skill_search.rag.vectorization import Embedder, EmbeddingIndexer, VectorizationConfig, get_shared_embedder


class CatalogService:
    """技能目录服务。"""

    def __init__(
        self,
        data_dir: Optional[Path] = None,
        encoder: Optional[Embedder] = None,
        sources: Optional[Sequence[RegistrySource]] = None,
    ) -> None:
        """
        Args:
            data_dir: 数据目录；None 时读取 storage.data_dir 配置
            encoder: 向量化器；None 时使用按配置共享的 Embedder
            sources: 注册源列表；None 时按 registries 配置装配
        """
        self.cfg = get_config_manager()
        self.logger = get_logger(__name__)

        self.storage = StorageConfig.from_config_manager(data_dir)
        self.store = RecordStore.from_storage_config(self.storage)
        heap = int(self.cfg.get_text_index_config().get("writer_heap_bytes", 50_000_000))
        self.text_index = TextIndex.open_or_create(self.storage.index_path, heap)

        vec_config = VectorizationConfig.from_config_manager()
        self.encoder = encoder or get_shared_embedder(vec_config)
        self.retrieval_config = RetrievalConfig.from_config_manager()
        self.retrieval = RetrievalService(self.store, self.encoder, self.text_index, self.retrieval_config)

        if sources is None:
            sources = build_sources(self.cfg.get_registries_config(), self.cfg.get_http_config())
        indexer = EmbeddingIndexer(self.store, self.encoder, vec_config.batch_size)
        self.coordinator = SyncCoordinator(self.store, sources, indexer)

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> "CatalogService":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def ensure_synced(self) -> Optional[SyncReport]:
        """首次启动（记录库为空）且开启 auto_initial_sync 时自动同步一次。"""
        if not bool(self.cfg.get_sync_config().get("auto_initial_sync", True)):
            return None
        if not self.store.needs_initial_sync():
            return None
        self.logger.info("首次启动，开始同步技能目录...")
        return self.sync()

    def sync(self, force: bool = False) -> SyncReport:
        """同步全部注册源，然后全量重建全文索引。"""
        report = self.coordinator.sync(force=force)
        self.text_index.rebuild(self.store)
        return report

    def search(
        self,
        query: str,
        limit: Optional[int] = None,
        registry: Optional[str] = None,
        trusted_only: bool = False,
    ) -> List[SearchHit]:
        """
        检索技能。

        说明：向检索服务请求 2*limit 条候选，再做可信过滤并截断到 limit，
        以免可信过滤后结果数量不足。
        """
        limit = self.retrieval_config.default_limit if limit is None else int(limit)
        if limit <= 0:
            return []
        hits = self.retrieval.search(query, limit * 2, registry)
        if trusted_only:
            hits = [h for h in hits if h.trusted]
        return hits[:limit]

    def show(self, slug: str) -> Optional[SkillRecord]:
        return self.store.get_by_slug(slug)

    def url(self, slug: str) -> Optional[str]:
        record = self.store.get_by_slug(slug)
        return record.github_url if record is not None else None

    def top(self, limit: int = 20, trusted_only: bool = False) -> List[SkillRecord]:
        return self.store.top(limit, trusted_only=trusted_only)
