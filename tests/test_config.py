"""
配置系统与日志配置测试。
"""

import json
import logging
from pathlib import Path

import pytest

from skill_search.config import (
    DEFAULT_CONFIG,
    ConfigManager,
    StorageConfig,
    get_config,
    get_config_manager,
    set_config_manager,
)
from skill_search.infra.logging import setup_logging
from skill_search.rag.retrieval import RetrievalConfig
from skill_search.rag.vectorization import VectorizationConfig


def test_repo_config_has_all_sections():
    cfg = ConfigManager()
    for section in DEFAULT_CONFIG:
        assert section in cfg.get_config(), section
    assert cfg.get_storage_config()["db_filename"] == "skills.db"


def test_missing_explicit_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        ConfigManager(str(tmp_path / "missing.json"))


def test_env_var_selects_file(tmp_path, monkeypatch):
    path = tmp_path / "custom.json"
    path.write_text(json.dumps({"retrieval": {"default_limit": 3, "rank_step": 0.2}}), encoding="utf-8")
    monkeypatch.setenv(ConfigManager.ENV_VAR, str(path))
    set_config_manager(None)

    assert get_config("retrieval")["default_limit"] == 3
    retrieval = RetrievalConfig.from_config_manager()
    assert retrieval.default_limit == 3
    assert retrieval.rank_step == 0.2
    assert retrieval.candidate_multiplier == 2


def test_reload_config_picks_up_changes(tmp_path):
    path = tmp_path / "app.json"
    path.write_text(json.dumps({"sync": {"auto_initial_sync": True}}), encoding="utf-8")
    cfg = ConfigManager(str(path))
    path.write_text(json.dumps({"sync": {"auto_initial_sync": False}}), encoding="utf-8")
    cfg.reload_config()
    assert cfg.get_sync_config()["auto_initial_sync"] is False


def test_storage_config_layout(tmp_path):
    storage = StorageConfig.from_config_manager(tmp_path)
    assert storage.db_path == tmp_path / "skills.db"
    assert storage.index_path == tmp_path / "index"
    assert storage.vectors_path == tmp_path / "vectors"

    default = StorageConfig.from_config_manager()
    assert default.data_dir == Path("~/.local/share/skill-search").expanduser()


def test_vectorization_config_defaults():
    vec = VectorizationConfig.from_config_manager()
    assert vec.model == "sentence-transformers/all-MiniLM-L6-v2"
    assert vec.batch_size == 32
    assert vec.preview_chars == 1000


def test_get_config_manager_is_shared():
    assert get_config_manager() is get_config_manager()


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def test_setup_logging_console_and_file(tmp_path, restore_root_logger):
    log_file = tmp_path / "logs" / "skill-search.log"
    path = tmp_path / "app.json"
    path.write_text(json.dumps({"logging": {
        "level": "INFO",
        "handlers": {
            "console": {"enabled": True, "level": "WARNING"},
            "file": {"enabled": True, "filename": str(log_file), "level": "INFO"},
        },
    }}), encoding="utf-8")

    setup_logging(ConfigManager(str(path)))
    root = restore_root_logger
    assert len(root.handlers) == 2
    assert root.handlers[0].level == logging.WARNING
    assert logging.getLogger("chromadb").level == logging.WARNING

    logging.getLogger("skill_search.test").info("hello file")
    for handler in root.handlers:
        handler.flush()
    assert "hello file" in log_file.read_text(encoding="utf-8")


def test_setup_logging_verbose(restore_root_logger):
    setup_logging(ConfigManager(), verbose=True)
    root = restore_root_logger
    assert root.level == logging.DEBUG
    assert all(h.level == logging.DEBUG for h in root.handlers)
