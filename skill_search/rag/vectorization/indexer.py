from typing import List

from skill_search.core.models import SkillRecord
from skill_search.infra.database.record_store import RecordStore
from skill_search.infra.logging import get_logger
from .embedder import Embedder


class EmbeddingIndexer:
    """向量索引器：为内容有变化（或尚无向量）的记录编码并写入向量库。

    职责：
    - 从记录库取出待向量化的记录
    - 按固定批大小编码并逐条写回
    - 统计日志字段：pending / written

    说明：
    - 内容指纹未变化的记录不会重复编码
    - EncoderError 原样向上抛出，由调用方决定是否降级
    """

    def __init__(self, store: RecordStore, embedder: Embedder, batch_size: int = 32):
        self.store = store
        self.embedder = embedder
        self.batch_size = max(1, int(batch_size))
        self.logger = get_logger(__name__)

    def index_pending(self) -> int:
        """编码所有待处理记录。

        Returns:
            int: 实际写入的向量数量
        """
        pending = self.store.records_needing_embedding()
        if not pending:
            self.logger.info("所有记录均已向量化")
            return 0

        self.logger.info(f"开始向量化 {len(pending)} 条记录")
        written = 0
        for start in range(0, len(pending), self.batch_size):
            chunk = pending[start:start + self.batch_size]
            written += self._index_chunk(chunk)
            self.logger.debug(f"已向量化一批记录: {len(chunk)}")

        self.logger.info(f"embedding index: pending={len(pending)}, written={written}")
        return written

    def _index_chunk(self, chunk: List[SkillRecord]) -> int:
        texts = [self.embedder.build_embed_text(r) for r in chunk]
        vectors = self.embedder.embed_batch(texts)
        for record, vector in zip(chunk, vectors):
            self.store.store_embedding(record.id, vector)
        return len(chunk)
