import chromadb
from chromadb.config import Settings
from pathlib import Path
from typing import Optional, Dict, Any, List, Literal

from ....core.exceptions import StorageError

# 定义允许的include字段类型
# 注意：ChromaDB API 使用 "metadatas"（复数形式），这是官方 API 的字段名
IncludeField = Literal["documents", "embeddings", "metadatas", "distances", "uris", "data"]

MetadataList = List[Dict[str, Any]]


class ChromaDBHelper:
    """ChromaDB 本地持久化助手类

    负责管理数据目录下的 PersistentClient 与集合。集合统一使用余弦空间，
    query 返回的 distances 即 1 - 余弦相似度。
    """

    def __init__(self, persist_dir: Path, collection_name: str = "skills"):
        """初始化 ChromaDB 助手

        Args:
            persist_dir: 向量库持久化目录
            collection_name: 默认集合名称
        """
        self.persist_dir = Path(persist_dir)
        self.collection_name = collection_name
        self._client: Optional[chromadb.ClientAPI] = None
        self._collections_cache: Dict[str, chromadb.Collection] = {}

    def connect(self) -> chromadb.ClientAPI:
        """打开本地向量库

        Raises:
            StorageError: 打开失败时抛出
        """
        if self._client is not None:
            return self._client

        try:
            self.persist_dir.mkdir(parents=True, exist_ok=True)
            self._client = chromadb.PersistentClient(
                path=str(self.persist_dir),
                settings=Settings(anonymized_telemetry=False),
            )
            return self._client
        except Exception as e:
            raise StorageError(f"无法打开向量库 {self.persist_dir}: {str(e)}") from e

    def disconnect(self) -> None:
        """断开数据库连接"""
        self._client = None
        self._collections_cache.clear()

    def get_collection(self, name: Optional[str] = None) -> chromadb.Collection:
        """获取或创建集合（余弦空间）

        Raises:
            StorageError: 操作失败时抛出
        """
        name = name or self.collection_name
        if name in self._collections_cache:
            return self._collections_cache[name]

        try:
            collection = self.connect().get_or_create_collection(
                name=name,
                metadata={"hnsw:space": "cosine"},
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"获取集合 '{name}' 失败: {str(e)}") from e

        self._collections_cache[name] = collection
        return collection

    def upsert(
        self,
        ids: List[str],
        embeddings: List[List[float]],
        metadatas: Optional[MetadataList] = None,
        collection_name: Optional[str] = None,
    ) -> None:
        """写入或覆盖向量（按 id 幂等）

        Raises:
            StorageError: 操作失败时抛出
        """
        try:
            self.get_collection(collection_name).upsert(
                ids=ids,
                embeddings=embeddings,
                metadatas=metadatas,
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"写入向量失败: {str(e)}") from e

    def query(
        self,
        query_embeddings: List[List[float]],
        n_results: int = 10,
        where: Optional[Dict[str, Any]] = None,
        include: Optional[List[IncludeField]] = None,
        collection_name: Optional[str] = None,
    ) -> chromadb.QueryResult:
        """按向量相似度查询

        Args:
            query_embeddings: 查询向量列表
            n_results: 返回结果数量
            where: 元数据过滤条件（如 {"registry": "anthropic"}）
            include: 包含的字段列表

        Raises:
            StorageError: 操作失败时抛出
        """
        try:
            return self.get_collection(collection_name).query(
                query_embeddings=query_embeddings,
                n_results=n_results,
                where=where,
                include=include or ["distances"],
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"向量查询失败: {str(e)}") from e

    def count(self, collection_name: Optional[str] = None) -> int:
        """获取集合中的向量数量"""
        try:
            return self.get_collection(collection_name).count()
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"获取向量数量失败: {str(e)}") from e

