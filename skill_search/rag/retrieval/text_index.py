from __future__ import annotations

"""
全文倒排索引：基于 tantivy 的本地目录索引。

职责：
- open_or_create：幂等地打开或创建索引目录
- rebuild：从记录库快照全量重建（先清空再逐条写入，一次提交）
- search：在 name/description/content 上做 OR 语义解析，可选 AND 注册源精确过滤

说明：
- 只做全量重建，不维护增量；代价与记录总数线性相关
- 提交是原子的：重建过程中打开的读者始终看到上一个已提交版本
"""

from pathlib import Path
from typing import Iterable, List, Optional, Protocol

import tantivy

from skill_search.core.exceptions import QueryError, StorageError
from skill_search.core.models import SkillRecord
from skill_search.infra.logging import get_logger
from .schemas import IndexHit

SEARCH_FIELDS = ["name", "description", "content"]


class SnapshotSource(Protocol):
    """重建索引所需的数据来源（RecordStore 满足该协议）"""

    def list_all(self) -> Iterable[SkillRecord]: ...


def build_schema() -> tantivy.Schema:
    """索引 schema：slug/name/description 分词且存储，content 只分词不存储，registry 精确匹配且存储"""
    builder = tantivy.SchemaBuilder()
    builder.add_text_field("slug", stored=True)
    builder.add_text_field("name", stored=True)
    builder.add_text_field("description", stored=True)
    builder.add_text_field("content", stored=False)
    builder.add_text_field("registry", stored=True, tokenizer_name="raw")
    return builder.build()


class TextIndex:
    """tantivy 全文索引封装。"""

    def __init__(self, index: tantivy.Index, location: Path, writer_heap_bytes: int = 50_000_000):
        self._index = index
        self.location = location
        self.writer_heap_bytes = int(writer_heap_bytes)
        self.logger = get_logger(__name__)

    @classmethod
    def open_or_create(cls, location: Path, writer_heap_bytes: int = 50_000_000) -> "TextIndex":
        """打开已有索引，不存在时按 schema 创建。

        Raises:
            StorageError: 目录不可用或索引损坏
        """
        location = Path(location)
        try:
            location.mkdir(parents=True, exist_ok=True)
            if tantivy.Index.exists(str(location)):
                index = tantivy.Index.open(str(location))
            else:
                index = tantivy.Index(build_schema(), path=str(location))
        except Exception as e:
            raise StorageError(f"无法打开全文索引 {location}: {e}") from e
        return cls(index, location, writer_heap_bytes)

    def rebuild(self, snapshot_source: SnapshotSource) -> int:
        """全量重建索引。

        Returns:
            int: 写入的文档数量

        Raises:
            StorageError: 写入或提交失败（此时已回滚，读者仍看到旧版本）
        """
        records = list(snapshot_source.list_all())
        self.logger.info(f"开始重建全文索引，共 {len(records)} 条记录")

        try:
            writer = self._index.writer(heap_size=self.writer_heap_bytes, num_threads=1)
        except Exception as e:
            raise StorageError(f"无法获取索引写入器: {e}") from e

        try:
            writer.delete_all_documents()
            for record in records:
                writer.add_document(self._to_document(record))
            writer.commit()
        except Exception as e:
            writer.rollback()
            raise StorageError(f"全文索引重建失败: {e}") from e
        finally:
            writer.wait_merging_threads()

        self._index.reload()
        self.logger.info("全文索引重建完成")
        return len(records)

    @staticmethod
    def _to_document(record: SkillRecord) -> tantivy.Document:
        doc = tantivy.Document()
        doc.add_text("slug", record.slug)
        doc.add_text("name", record.name)
        doc.add_text("description", record.description)
        doc.add_text("registry", record.registry)
        # content 合并名称、描述与 SKILL.md，供全文匹配
        doc.add_text("content", f"{record.name} {record.description} {record.skill_md}")
        return doc

    def search(self, query: str, limit: int, registry: Optional[str] = None) -> List[IndexHit]:
        """执行全文检索。

        Args:
            query: tantivy 查询语法字符串（默认 OR 语义）
            limit: 返回数量上限；<= 0 时直接返回空列表
            registry: 可选的注册源精确过滤

        Returns:
            List[IndexHit]: 按相关度降序

        Raises:
            QueryError: 查询语法错误（包括引用不存在的字段）
        """
        if limit <= 0 or not (query or "").strip():
            return []

        try:
            text_query = self._index.parse_query(query, SEARCH_FIELDS)
        except ValueError as e:
            raise QueryError(f"查询语法错误: {query!r}: {e}") from e

        final_query = text_query
        if registry:
            registry_query = tantivy.Query.term_query(self._index.schema, "registry", registry)
            final_query = tantivy.Query.boolean_query([
                (tantivy.Occur.Must, text_query),
                (tantivy.Occur.Must, registry_query),
            ])

        searcher = self._index.searcher()
        hits: List[IndexHit] = []
        for score, address in searcher.search(final_query, int(limit)).hits:
            doc = searcher.doc(address)
            hits.append(
                IndexHit(
                    slug=doc.get_first("slug") or "",
                    name=doc.get_first("name") or "",
                    description=doc.get_first("description") or "",
                    registry=doc.get_first("registry") or "",
                    score=float(score),
                )
            )
        return hits

    def num_docs(self) -> int:
        self._index.reload()
        return self._index.searcher().num_docs
