import copy
import json
import os
from dataclasses import dataclass
from typing import Optional, Dict, Any
from pathlib import Path


# 内置默认配置：当仓库内的 config/app_config.json 不存在时使用（例如以非可编辑方式安装）
DEFAULT_CONFIG: Dict[str, Any] = {
    "storage": {
        "data_dir": "~/.local/share/skill-search",
        "db_filename": "skills.db",
        "index_dirname": "index",
        "vectors_dirname": "vectors",
        "collection_name": "skills",
    },
    "vectorization": {
        "model": "sentence-transformers/all-MiniLM-L6-v2",
        "device": "auto",
        "batch_size": 32,
        "preview_chars": 1000,
    },
    "retrieval": {
        "default_limit": 10,
        "candidate_multiplier": 2,
        "rank_step": 0.1,
        "clean_query": True,
    },
    "text_index": {
        "writer_heap_bytes": 50000000,
    },
    "sync": {
        "auto_initial_sync": True,
    },
    "registries": {
        "skillssh": {
            "enabled": True,
            "base_url": "https://skills.sh",
            "page_limit": 100,
            "queries": [
                "", "a", "e", "i", "o", "u", "s", "t", "n", "r",
                "code", "docker", "git", "api", "test", "debug",
                "python", "rust", "javascript", "typescript",
            ],
        },
        "github": [
            {"name": "anthropic", "repo": "anthropics/skills", "branch": "main", "trusted": True},
            {"name": "openai", "repo": "openai/skills", "branch": "main", "trusted": True},
        ],
    },
    "http": {
        "request_timeout": 30,
        "user_agent": "skill-search/0.1",
        "github_token_env": "GITHUB_TOKEN",
    },
    "cache": {
        "max_cache_size": 2,
    },
    "logging": {
        "level": "INFO",
        "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        "handlers": {
            "console": {"enabled": True, "level": "WARNING"},
            "file": {"enabled": False},
        },
    },
}


@dataclass
class StorageConfig:
    """本地存储布局：SQLite 记录库、向量目录与全文索引目录都位于同一个数据目录下。"""

    data_dir: Path
    db_filename: str = "skills.db"
    index_dirname: str = "index"
    vectors_dirname: str = "vectors"
    collection_name: str = "skills"

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_filename

    @property
    def index_path(self) -> Path:
        return self.data_dir / self.index_dirname

    @property
    def vectors_path(self) -> Path:
        return self.data_dir / self.vectors_dirname

    @classmethod
    def from_config_manager(cls, data_dir: Optional[Path] = None) -> "StorageConfig":
        """从配置构建存储布局；data_dir 参数（命令行 --data-dir）优先于配置文件。"""
        cfg = get_config_manager().get_storage_config()
        root = Path(data_dir) if data_dir else Path(str(cfg.get("data_dir", "~/.local/share/skill-search")))
        return cls(
            data_dir=root.expanduser(),
            db_filename=cfg.get("db_filename", cls.db_filename),
            index_dirname=cfg.get("index_dirname", cls.index_dirname),
            vectors_dirname=cfg.get("vectors_dirname", cls.vectors_dirname),
            collection_name=cfg.get("collection_name", cls.collection_name),
        )


class ConfigManager:
    """配置管理器，从 JSON 文件读取配置。

    查找顺序：构造参数 > 环境变量 SKILL_SEARCH_CONFIG > 仓库内 config/app_config.json。
    只有默认路径缺失时才回退到内置 DEFAULT_CONFIG；显式指定的文件不存在直接报错。
    """

    ENV_VAR = "SKILL_SEARCH_CONFIG"

    def __init__(self, config_file: Optional[str] = None):
        self._explicit = bool(config_file or os.environ.get(self.ENV_VAR))
        self.config_file = config_file or os.environ.get(self.ENV_VAR) or "config/app_config.json"
        self._config_data = self._load_config()

    def _resolve_path(self) -> Path:
        path = Path(self.config_file).expanduser()
        if path.is_absolute():
            return path
        # 相对路径以仓库根目录为基准，无论从哪个目录启动都能找到 config/app_config.json
        return Path(__file__).parent.parent / path

    def _load_config(self) -> Dict[str, Any]:
        """从JSON文件加载配置"""
        config_path = self._resolve_path()

        if not config_path.exists():
            if self._explicit:
                raise FileNotFoundError(f"配置文件不存在: {self.config_file}")
            return copy.deepcopy(DEFAULT_CONFIG)

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except Exception as e:
            raise RuntimeError(f"无法加载配置文件 {self.config_file}: {e}")

    def get_config(self, section: str = None) -> Dict[str, Any]:
        """获取配置数据"""
        if section:
            return self._config_data.get(section, {})
        return self._config_data

    def get_storage_config(self) -> Dict[str, Any]:
        return self._config_data.get("storage", {})

    def get_vectorization_config(self) -> Dict[str, Any]:
        """获取向量化配置"""
        return self._config_data.get("vectorization", {})

    def get_retrieval_config(self) -> Dict[str, Any]:
        """获取检索配置"""
        return self._config_data.get("retrieval", {})

    def get_text_index_config(self) -> Dict[str, Any]:
        return self._config_data.get("text_index", {})

    def get_sync_config(self) -> Dict[str, Any]:
        return self._config_data.get("sync", {})

    def get_registries_config(self) -> Dict[str, Any]:
        """获取注册源配置（skills.sh 与 GitHub 仓库列表）"""
        return self._config_data.get("registries", {})

    def get_http_config(self) -> Dict[str, Any]:
        return self._config_data.get("http", {})

    def get_cache_config(self) -> Dict[str, Any]:
        """获取缓存配置"""
        return self._config_data.get("cache", {})

    def get_logging_config(self) -> Dict[str, Any]:
        """获取日志配置"""
        return self._config_data.get("logging", {})

    def reload_config(self):
        """重新加载配置文件"""
        self._config_data = self._load_config()


# 全局配置管理器实例（首次访问时创建）
_config_manager: Optional[ConfigManager] = None


def get_config_manager() -> ConfigManager:
    """获取配置管理器实例"""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager


def set_config_manager(manager: Optional[ConfigManager]) -> None:
    """替换全局配置管理器（测试或命令行指定配置文件时使用）；传 None 表示下次访问时重新加载。"""
    global _config_manager
    _config_manager = manager


def get_config(section: str = None) -> Dict[str, Any]:
    """获取配置数据的便捷函数"""
    return get_config_manager().get_config(section)
