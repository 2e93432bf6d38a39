import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Any, Iterable, Iterator, List

from ....core.exceptions import StorageError

# skills 表以 (registry, slug) 为自然主键；content_hash / embedded_hash 用于判断是否需要重新向量化
SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS skills (
    id INTEGER PRIMARY KEY,
    slug TEXT NOT NULL,
    name TEXT NOT NULL,
    registry TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    skill_md TEXT NOT NULL DEFAULT '',
    github_url TEXT NOT NULL,
    version TEXT,
    stars INTEGER NOT NULL DEFAULT 0,
    trusted INTEGER NOT NULL DEFAULT 0,
    updated_at INTEGER NOT NULL DEFAULT 0,
    content_hash TEXT NOT NULL DEFAULT '',
    embedded_hash TEXT,
    UNIQUE(registry, slug)
);

CREATE INDEX IF NOT EXISTS idx_skills_slug ON skills(slug);
CREATE INDEX IF NOT EXISTS idx_skills_registry ON skills(registry);
CREATE INDEX IF NOT EXISTS idx_skills_stars ON skills(stars DESC);
CREATE INDEX IF NOT EXISTS idx_skills_trusted ON skills(trusted);

CREATE TABLE IF NOT EXISTS sync_state (
    registry TEXT PRIMARY KEY,
    last_sync INTEGER NOT NULL,
    etag TEXT
);
"""


class SQLiteDBHelper:
    """SQLite 数据库助手类

    负责管理单个数据库文件的连接与建表；每次写调用在独立事务中完成，
    失败时整体回滚，不会留下部分写入。
    """

    def __init__(self, db_path: Path):
        """
        Args:
            db_path: 数据库文件路径，父目录不存在时自动创建
        """
        self.db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None

    def connect(self) -> sqlite3.Connection:
        """建立数据库连接并确保表结构存在

        Raises:
            StorageError: 无法打开数据库文件或建表失败
        """
        if self._conn is not None:
            return self._conn

        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path))
            conn.row_factory = sqlite3.Row
            conn.executescript(SCHEMA_SQL)
            conn.commit()
        except (sqlite3.Error, OSError) as e:
            raise StorageError(f"无法打开记录库 {self.db_path}: {e}") from e

        self._conn = conn
        return self._conn

    def disconnect(self) -> None:
        """断开数据库连接"""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """多条语句共用一个事务（例如 upsert 后回读 id），异常时整体回滚"""
        conn = self.connect()
        try:
            with conn:
                yield conn
        except sqlite3.Error as e:
            raise StorageError(f"记录库写入失败: {e}") from e

    def execute(self, sql: str, params: Iterable[Any] = ()) -> sqlite3.Cursor:
        """在单个事务中执行一条写语句

        Raises:
            StorageError: I/O 错误或约束冲突
        """
        conn = self.connect()
        try:
            with conn:
                return conn.execute(sql, tuple(params))
        except sqlite3.Error as e:
            raise StorageError(f"记录库写入失败: {e}") from e

    def fetch_one(self, sql: str, params: Iterable[Any] = ()) -> Optional[sqlite3.Row]:
        conn = self.connect()
        try:
            return conn.execute(sql, tuple(params)).fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"记录库查询失败: {e}") from e

    def fetch_all(self, sql: str, params: Iterable[Any] = ()) -> List[sqlite3.Row]:
        conn = self.connect()
        try:
            return conn.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"记录库查询失败: {e}") from e
