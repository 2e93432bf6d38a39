"""
数据库访问层

提供 SQLite 记录库、ChromaDB 向量库的连接管理，以及组合二者的 RecordStore。
"""

from skill_search.infra.database.sqlite.db_helper import SQLiteDBHelper  # noqa: F401
from skill_search.infra.database.chroma.db_helper import ChromaDBHelper  # noqa: F401
from skill_search.infra.database.record_store import RecordStore  # noqa: F401
