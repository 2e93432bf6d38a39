from __future__ import annotations

"""
技能记录库：SQLite 保存记录与同步状态，ChromaDB 保存向量。

职责：
- 以 (registry, slug) 为自然主键做 upsert 合并，内部 id 在多次写入之间保持稳定
- 提供按注册源/slug 的读取、热度排序、单字段更新
- 维护每个注册源的同步状态
- 向量近邻查询（余弦距离）与无向量时的直接文本扫描

说明：
- 每个调用自成一个事务，失败时不会留下部分写入；所有底层错误统一转换为 StorageError
- 没有自动删除：注册源下架的条目会一直保留，直到被同键记录覆盖
"""

import sqlite3
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from skill_search.config import StorageConfig
from skill_search.core.exceptions import StorageError
from skill_search.core.models import SkillRecord, SyncState
from skill_search.infra.database.chroma.db_helper import ChromaDBHelper
from skill_search.infra.database.sqlite.db_helper import SQLiteDBHelper
from skill_search.infra.logging import get_logger

_COLUMNS = "id, slug, name, registry, description, skill_md, github_url, version, stars, trusted, updated_at"

_UPSERT_SQL = """
INSERT INTO skills (slug, name, registry, description, skill_md, github_url, version, stars, trusted, updated_at, content_hash)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(registry, slug) DO UPDATE SET
    name = excluded.name,
    description = excluded.description,
    skill_md = excluded.skill_md,
    github_url = excluded.github_url,
    version = excluded.version,
    stars = excluded.stars,
    trusted = excluded.trusted,
    updated_at = excluded.updated_at,
    content_hash = excluded.content_hash
"""


def _row_to_record(row: sqlite3.Row) -> SkillRecord:
    return SkillRecord(
        id=row["id"],
        slug=row["slug"],
        name=row["name"],
        registry=row["registry"],
        description=row["description"],
        skill_md=row["skill_md"],
        github_url=row["github_url"],
        version=row["version"],
        stars=row["stars"],
        trusted=bool(row["trusted"]),
        updated_at=row["updated_at"],
    )


class RecordStore:
    """技能记录库。

    用途：
    - 同步流程的写入目标（upsert / 同步状态）
    - 全文索引重建的数据快照来源（list_all）
    - 混合检索的向量召回与结果补全（vector_search / get_by_id / get）
    """

    def __init__(self, db_path: Path, vectors_path: Path, collection_name: str = "skills"):
        """
        Args:
            db_path: SQLite 文件路径
            vectors_path: ChromaDB 持久化目录
            collection_name: 向量集合名称
        """
        self.logger = get_logger(__name__)
        self.sql = SQLiteDBHelper(db_path)
        self.vectors = ChromaDBHelper(vectors_path, collection_name)
        self.sql.connect()

    @classmethod
    def from_storage_config(cls, storage: StorageConfig) -> "RecordStore":
        return cls(storage.db_path, storage.vectors_path, storage.collection_name)

    def close(self) -> None:
        self.sql.disconnect()
        self.vectors.disconnect()

    # ------------------------------------------------------------------
    # 记录读写
    # ------------------------------------------------------------------

    def upsert(self, record: SkillRecord) -> int:
        """插入或合并一条记录。

        (registry, slug) 不存在时插入；存在时原地合并所有可变字段，id 保持不变。

        Returns:
            int: 稳定的内部 id
        """
        params = (
            record.slug,
            record.name,
            record.registry,
            record.description,
            record.skill_md,
            record.github_url,
            record.version,
            int(record.stars),
            1 if record.trusted else 0,
            int(record.updated_at),
            record.content_fingerprint(),
        )
        with self.sql.transaction() as conn:
            conn.execute(_UPSERT_SQL, params)
            row = conn.execute(
                "SELECT id FROM skills WHERE registry = ? AND slug = ?",
                (record.registry, record.slug),
            ).fetchone()
            if row is None:
                raise StorageError(f"upsert 后未找到记录: {record.unique_key}")
            record_id = int(row["id"])
            # 向量写入失败时整个事务回滚，记录不会单独落库
            if record.embedding:
                self._write_vector(conn, record_id, record.registry, record.embedding, params[-1])
        return record_id

    def update_stars(self, registry: str, slug: str, stars: int) -> None:
        """只更新热度字段，不触发完整合并"""
        self.sql.execute(
            "UPDATE skills SET stars = ? WHERE registry = ? AND slug = ?",
            (int(stars), registry, slug),
        )

    def get(self, registry: str, slug: str) -> Optional[SkillRecord]:
        row = self.sql.fetch_one(
            f"SELECT {_COLUMNS} FROM skills WHERE registry = ? AND slug = ? LIMIT 1",
            (registry, slug),
        )
        return _row_to_record(row) if row else None

    def get_by_id(self, record_id: int) -> Optional[SkillRecord]:
        row = self.sql.fetch_one(f"SELECT {_COLUMNS} FROM skills WHERE id = ?", (int(record_id),))
        return _row_to_record(row) if row else None

    def get_by_slug(self, slug: str) -> Optional[SkillRecord]:
        """按 slug 取第一条匹配（不同注册源同名时取 id 最小者）"""
        row = self.sql.fetch_one(
            f"SELECT {_COLUMNS} FROM skills WHERE slug = ? ORDER BY id LIMIT 1",
            (slug,),
        )
        return _row_to_record(row) if row else None

    def list_all(self) -> List[SkillRecord]:
        rows = self.sql.fetch_all(f"SELECT {_COLUMNS} FROM skills ORDER BY id")
        return [_row_to_record(r) for r in rows]

    def list_by_registry(self, registry: str) -> List[SkillRecord]:
        rows = self.sql.fetch_all(
            f"SELECT {_COLUMNS} FROM skills WHERE registry = ? ORDER BY id",
            (registry,),
        )
        return [_row_to_record(r) for r in rows]

    def count(self) -> int:
        row = self.sql.fetch_one("SELECT COUNT(*) AS n FROM skills")
        return int(row["n"]) if row else 0

    def needs_initial_sync(self) -> bool:
        """记录库为空时需要首次同步"""
        return self.count() == 0

    def top(self, limit: int, trusted_only: bool = False) -> List[SkillRecord]:
        """按热度降序返回前 limit 条记录"""
        if limit <= 0:
            return []
        where = "WHERE trusted = 1 " if trusted_only else ""
        rows = self.sql.fetch_all(
            f"SELECT {_COLUMNS} FROM skills {where}ORDER BY stars DESC, id ASC LIMIT ?",
            (int(limit),),
        )
        return [_row_to_record(r) for r in rows]

    # ------------------------------------------------------------------
    # 同步状态
    # ------------------------------------------------------------------

    def get_sync_state(self, registry: str) -> Optional[SyncState]:
        row = self.sql.fetch_one(
            "SELECT registry, last_sync, etag FROM sync_state WHERE registry = ?",
            (registry,),
        )
        if row is None:
            return None
        return SyncState(registry=row["registry"], last_sync=row["last_sync"], validator=row["etag"])

    def set_sync_state(self, registry: str, timestamp: int, validator: Optional[str] = None) -> None:
        self.sql.execute(
            "INSERT OR REPLACE INTO sync_state (registry, last_sync, etag) VALUES (?, ?, ?)",
            (registry, int(timestamp), validator),
        )

    def clear_all_sync_state(self) -> None:
        self.sql.execute("DELETE FROM sync_state")

    # ------------------------------------------------------------------
    # 向量
    # ------------------------------------------------------------------

    def records_needing_embedding(self) -> List[SkillRecord]:
        """内容指纹与已入库向量不一致（或尚无向量）的记录"""
        rows = self.sql.fetch_all(
            f"SELECT {_COLUMNS} FROM skills "
            "WHERE embedded_hash IS NULL OR embedded_hash != content_hash ORDER BY id"
        )
        return [_row_to_record(r) for r in rows]

    def store_embedding(self, record_id: int, vector: Sequence[float]) -> None:
        """写入一条记录的向量，并记下当时的内容指纹"""
        row = self.sql.fetch_one(
            "SELECT registry, content_hash FROM skills WHERE id = ?",
            (int(record_id),),
        )
        if row is None:
            raise StorageError(f"记录不存在，无法写入向量: id={record_id}")

        with self.sql.transaction() as conn:
            self._write_vector(conn, int(record_id), row["registry"], vector, row["content_hash"])

    def _write_vector(
        self,
        conn: sqlite3.Connection,
        record_id: int,
        registry: str,
        vector: Sequence[float],
        content_hash: str,
    ) -> None:
        """在调用方的事务内写入向量并更新 embedded_hash"""
        self.vectors.upsert(
            ids=[str(record_id)],
            embeddings=[[float(x) for x in vector]],
            metadatas=[{"registry": registry}],
        )
        conn.execute(
            "UPDATE skills SET embedded_hash = ? WHERE id = ?",
            (content_hash, record_id),
        )

    def embedding_count(self) -> int:
        return self.vectors.count()

    def vector_search(
        self,
        query_vector: Sequence[float],
        limit: int,
        registry: Optional[str] = None,
    ) -> List[Tuple[int, float]]:
        """余弦近邻查询。

        Returns:
            List[Tuple[int, float]]: (记录 id, 余弦距离)，按距离升序
        """
        total = self.vectors.count()
        if limit <= 0 or total == 0:
            return []

        result = self.vectors.query(
            query_embeddings=[[float(x) for x in query_vector]],
            n_results=min(int(limit), total),
            where={"registry": registry} if registry else None,
            include=["distances"],
        )
        ids = (result.get("ids") or [[]])[0]
        dists = (result.get("distances") or [[]])[0]
        hits = [(int(_id), float(dist)) for _id, dist in zip(ids, dists)]
        hits.sort(key=lambda h: h[1])
        return hits

    def fuzzy_search(self, query_text: str, limit: int) -> List[SkillRecord]:
        """直接扫描文本字段（仅在没有任何向量时作为兜底）。

        查询按空白切分为词，任意词出现在 name/description/skill_md 中即命中；
        名称命中的排在前面，其次按热度降序。
        """
        terms = [t for t in (query_text or "").split() if t]
        if limit <= 0 or not terms:
            return []

        clauses = []
        params: List[str] = []
        name_hits = []
        for term in terms:
            pattern = f"%{_escape_like(term)}%"
            clauses.append(
                "(name LIKE ? ESCAPE '\\' OR description LIKE ? ESCAPE '\\' OR skill_md LIKE ? ESCAPE '\\')"
            )
            params.extend([pattern, pattern, pattern])
            name_hits.append("(name LIKE ? ESCAPE '\\')")

        order_params = [f"%{_escape_like(t)}%" for t in terms]
        sql = (
            f"SELECT {_COLUMNS} FROM skills WHERE {' OR '.join(clauses)} "
            f"ORDER BY ({' + '.join(name_hits)}) DESC, stars DESC, id ASC LIMIT ?"
        )
        rows = self.sql.fetch_all(sql, [*params, *order_params, int(limit)])
        return [_row_to_record(r) for r in rows]


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
