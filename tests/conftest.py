# -*- coding: utf-8 -*-
"""
Pytest 全局配置：
- 确保 tests 运行时可以导入项目根目录下的 skill_search 包
- 每个用例使用内置默认配置，不读取环境变量指定的配置文件
- 提供临时记录库与确定性的假向量化器（不加载真实模型）
"""
import hashlib
import math
import re
import sys
from pathlib import Path
from typing import List, Sequence

import pytest


# 1) 确保将项目根目录加入 sys.path，便于 `from skill_search ...` 导入
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from skill_search.config import ConfigManager, set_config_manager  # noqa: E402
from skill_search.core.models import SkillRecord  # noqa: E402
from skill_search.infra.database.record_store import RecordStore  # noqa: E402


@pytest.fixture(autouse=True)
def _default_config(monkeypatch):
    monkeypatch.delenv(ConfigManager.ENV_VAR, raising=False)
    set_config_manager(None)
    yield
    set_config_manager(None)


@pytest.fixture
def store(tmp_path):
    s = RecordStore(tmp_path / "skills.db", tmp_path / "vectors")
    yield s
    s.close()


def make_record(slug: str, registry: str = "anthropic", **kwargs) -> SkillRecord:
    """构造测试记录；未指定的字段取合理默认值"""
    defaults = {
        "name": slug.replace("-", " ").title(),
        "description": f"{slug} skill",
        "github_url": f"https://github.com/example/{registry}/tree/main/{slug}",
        "stars": 0,
        "trusted": registry in ("anthropic", "openai"),
        "updated_at": 1700000000,
    }
    defaults.update(kwargs)
    return SkillRecord(slug=slug, registry=registry, **defaults)


class FakeEncoder:
    """确定性的词袋向量化器：共享词越多，余弦相似度越高。"""

    DIM = 64

    def __init__(self, preview_chars: int = 1000):
        self.preview_chars = preview_chars
        self.calls: List[List[str]] = []

    def _vector(self, text: str) -> List[float]:
        vec = [0.0] * self.DIM
        vec[0] = 0.05  # 空文本也有非零向量
        for word in re.findall(r"\w+", (text or "").lower()):
            slot = int(hashlib.md5(word.encode("utf-8")).hexdigest(), 16) % (self.DIM - 1) + 1
            vec[slot] += 1.0
        norm = math.sqrt(sum(x * x for x in vec))
        return [x / norm for x in vec]

    def embed_batch(self, texts: Sequence[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        return [self._vector(t) for t in texts]

    def embed_query(self, text: str) -> List[float]:
        return self.embed_batch([text])[0]

    def build_embed_text(self, record: SkillRecord) -> str:
        return f"{record.name}\n{record.description}\n{(record.skill_md or '')[: self.preview_chars]}"


@pytest.fixture
def fake_encoder():
    return FakeEncoder()


class StaticSource:
    """固定数据的注册源；error 不为 None 时在交付完 items 后抛出"""

    def __init__(self, name, items, trusted=True, validator=None, error=None):
        self.name = name
        self.trusted = trusted
        self.items = items
        self.error = error
        self._validator = validator

    @property
    def validator(self):
        return self._validator

    def fetch(self):
        for item in self.items:
            yield item
        if self.error is not None:
            raise self.error
