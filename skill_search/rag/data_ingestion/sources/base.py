"""注册源协作方约定

职责：每个注册源只负责把外部数据拉取并整理为 FetchedSkill 序列，
不接触记录库，也不关心 slug 规范化与可信标记的落库方式。

说明：拉取整体失败时抛出 NetworkError；单条数据失败应在源内部记录日志并跳过。
"""
from __future__ import annotations

from typing import Iterable, Optional, Protocol, runtime_checkable

from skill_search.core.models import FetchedSkill


@runtime_checkable
class RegistrySource(Protocol):
    """注册源协议。

    Attributes:
        name: 注册源名称（写入 SkillRecord.registry）
        trusted: 是否为权威注册源
        validator: 最近一次 fetch 得到的缓存校验令牌（如 HTTP ETag），可能为 None
    """

    name: str
    trusted: bool

    @property
    def validator(self) -> Optional[str]: ...

    def fetch(self) -> Iterable[FetchedSkill]: ...
