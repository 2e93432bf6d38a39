from __future__ import annotations

"""
同步协调器：把各注册源交付的条目写入记录库，并维护每个注册源的同步状态。

流程：
1) force 时先清空全部同步状态（仅影响记账，不影响拉取）
2) 逐个注册源拉取 → 规范化 → 逐条 upsert；单条失败记录日志后跳过
3) 每个注册源结束后写入 sync_state（时间戳 + validator）
4) 全部注册源结束后执行向量化；EncoderError 只记录日志，不影响同步结果

说明：
- 注册源抛出 NetworkError 视为“收到 0 条记录”，继续下一个注册源
- 记录库级别的失败（StorageError 来自 sync_state 写入）直接向上抛出
- 全文索引的重建由调用方负责
"""

import time
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Sequence

from pydantic import ValidationError

from skill_search.core.exceptions import EncoderError, NetworkError, StorageError
from skill_search.infra.database.record_store import RecordStore
from skill_search.infra.logging import get_logger
from skill_search.rag.vectorization.indexer import EmbeddingIndexer
from .sources.base import RegistrySource
from .validators import to_skill_record


@dataclass
class RegistryReport:
    registry: str
    received: int = 0
    upserted: int = 0
    failed: int = 0
    network_error: Optional[str] = None


@dataclass
class SyncReport:
    """一次同步的统计结果"""

    registries: List[RegistryReport] = field(default_factory=list)
    embedded: int = 0
    embedding_error: Optional[str] = None

    @property
    def upserted(self) -> int:
        return sum(r.upserted for r in self.registries)

    @property
    def failed(self) -> int:
        return sum(r.failed for r in self.registries)

    def as_dict(self) -> Dict[str, object]:
        return {
            "registries": [asdict(r) for r in self.registries],
            "upserted": self.upserted,
            "failed": self.failed,
            "embedded": self.embedded,
            "embedding_error": self.embedding_error,
        }


class SyncCoordinator:
    def __init__(
        self,
        store: RecordStore,
        sources: Sequence[RegistrySource],
        indexer: Optional[EmbeddingIndexer] = None,
    ):
        self.store = store
        self.sources = list(sources)
        self.indexer = indexer
        self.logger = get_logger(__name__)

    def sync(self, force: bool = False) -> SyncReport:
        """
        执行一次完整同步。

        Args:
            force: 是否先清空全部同步状态

        Returns:
            SyncReport: 各注册源的收到 / 写入 / 失败数量与向量化数量

        Raises:
            StorageError: 同步状态无法读写
        """
        if force:
            self.logger.info("强制同步：清空全部同步状态")
            self.store.clear_all_sync_state()

        report = SyncReport()
        for source in self.sources:
            report.registries.append(self._sync_source(source))

        if self.indexer is not None:
            try:
                report.embedded = self.indexer.index_pending()
            except EncoderError as e:
                report.embedding_error = str(e)
                self.logger.warning(f"向量化不可用，跳过本次向量化: {e}")

        self.logger.info(
            f"同步完成: upserted={report.upserted}, failed={report.failed}, embedded={report.embedded}"
        )
        return report

    def _sync_source(self, source: RegistrySource) -> RegistryReport:
        result = RegistryReport(registry=source.name)
        self.logger.info(f"开始同步注册源: {source.name}")
        now = int(time.time())

        try:
            for fetched in source.fetch():
                result.received += 1
                try:
                    record = to_skill_record(fetched, source.name, source.trusted, now)
                    self.store.upsert(record)
                    result.upserted += 1
                except (ValidationError, StorageError) as e:
                    result.failed += 1
                    self.logger.warning(f"{source.name}: 跳过 {fetched.external_id}: {e}")
        except NetworkError as e:
            result.network_error = str(e)
            self.logger.warning(f"{source.name}: 拉取失败，按 0 条记录处理: {e}")

        self.store.set_sync_state(source.name, now, source.validator)
        self.logger.info(
            f"{source.name}: received={result.received}, upserted={result.upserted}, failed={result.failed}"
        )
        return result
