from __future__ import annotations

"""
领域数据结构定义（Pydantic 模型）。

设计原则：
- SkillRecord 的自然主键为 (registry, slug)，内部 id 由记录库分配且在多次 upsert 之间保持不变。
- FetchedSkill 是注册源（外部协作方）交付给同步流程的唯一数据形态。
- 所有字段使用基础类型，方便序列化与日志记录。
"""

import hashlib
from typing import List, Optional
from pydantic import BaseModel, Field


class SkillRecord(BaseModel):
    """一条技能目录记录。

    Attributes:
        id: 记录库内部 id（未入库时为 None）。
        slug: 注册源内的标识（已将 "/" 规范化为 "__"）。
        name: 展示名称。
        registry: 注册源名称，如 anthropic / openai / skillssh。
        description: 简短描述。
        skill_md: 完整的 SKILL.md 文档文本。
        github_url: 规范的源码地址（安装地址）。
        version: 可选版本号。
        stars: 热度指标（stars / installs）。
        trusted: 是否来自权威注册源。
        updated_at: 最近一次同步写入的时间戳（秒）。
        embedding: 可选的向量，入库时一并写入向量库。
    """

    id: Optional[int] = None
    slug: str = Field(..., min_length=1)
    name: str
    registry: str = Field(..., min_length=1)
    description: str = ""
    skill_md: str = ""
    github_url: str = ""
    version: Optional[str] = None
    stars: int = 0
    trusted: bool = False
    updated_at: int = 0
    embedding: Optional[List[float]] = Field(default=None, repr=False)

    @property
    def unique_key(self) -> str:
        return f"{self.registry}:{self.slug}"

    def content_fingerprint(self) -> str:
        """参与向量化的文本指纹；内容未变化时无需重新编码。"""
        payload = "\n".join([self.name, self.description, self.skill_md])
        return hashlib.sha1(payload.encode("utf-8")).hexdigest()


class SyncState(BaseModel):
    """单个注册源的同步状态。

    validator 为缓存校验令牌（例如 HTTP ETag），目前只记录、不参与跳过拉取的判断。
    """

    registry: str
    last_sync: int
    validator: Optional[str] = None


class FetchedSkill(BaseModel):
    """注册源交付的标准化条目。"""

    external_id: str = Field(..., min_length=1)
    name: str
    popularity: int = 0
    description: Optional[str] = None
    url: Optional[str] = None
    skill_md: Optional[str] = None
    version: Optional[str] = None
