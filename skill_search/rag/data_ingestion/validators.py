from __future__ import annotations

import time
from typing import Optional

from skill_search.core.models import FetchedSkill, SkillRecord


def normalize_slug(external_id: str) -> str:
    """外部 id 中的 "/" 统一替换为 "__"，保证 slug 可作为单段路径使用。"""
    return (external_id or "").strip().replace("/", "__")


def to_skill_record(
    fetched: FetchedSkill,
    registry: str,
    trusted: bool,
    now: Optional[int] = None,
) -> SkillRecord:
    """将注册源条目规范化为 SkillRecord（尚未入库，id 为 None）。

    Raises:
        pydantic.ValidationError: 规范化后的字段不合法（例如 slug 为空）
    """
    return SkillRecord(
        slug=normalize_slug(fetched.external_id),
        name=fetched.name,
        registry=registry,
        description=fetched.description or "",
        skill_md=fetched.skill_md or "",
        github_url=fetched.url or "",
        version=fetched.version,
        stars=int(fetched.popularity or 0),
        trusted=bool(trusted),
        updated_at=int(time.time()) if now is None else int(now),
    )
