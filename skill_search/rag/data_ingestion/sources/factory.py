"""按配置装配注册源（registries + http 两个配置块）"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from .base import RegistrySource
from .github import GitHubRepoSource
from .http import HttpSettings, create_session
from .skillssh import SkillsShSource


def build_sources(
    registries_cfg: Dict[str, Any],
    http_cfg: Dict[str, Any],
    session: Optional[requests.Session] = None,
) -> List[RegistrySource]:
    """
    Returns:
        List[RegistrySource]: 先权威的 GitHub 仓库源，后 skills.sh
    """
    settings = HttpSettings.from_config(http_cfg or {})
    session = session or create_session(settings)

    sources: List[RegistrySource] = []
    for entry in registries_cfg.get("github") or []:
        if not entry.get("enabled", True):
            continue
        sources.append(
            GitHubRepoSource(
                name=entry["name"],
                repo=entry["repo"],
                session=session,
                branch=entry.get("branch", "main"),
                trusted=bool(entry.get("trusted", True)),
                timeout=settings.request_timeout,
                token=settings.github_token,
            )
        )

    skillssh_cfg = registries_cfg.get("skillssh") or {}
    if skillssh_cfg.get("enabled", True):
        sources.append(
            SkillsShSource(
                session=session,
                base_url=skillssh_cfg.get("base_url", "https://skills.sh"),
                queries=skillssh_cfg.get("queries"),
                page_limit=int(skillssh_cfg.get("page_limit", 100)),
                timeout=settings.request_timeout,
            )
        )
    return sources
