"""skills.sh 注册源

职责：按一组固定的查询词调用 skills.sh 搜索接口，合并去重后交付 FetchedSkill。

说明：
- 单个查询失败（网络错误、非 2xx、响应不是 JSON 对象）记录日志后跳过
- 单个条目字段不合法（例如 installs 不是整数）记录日志后跳过，不影响同批其他条目
- 全部查询都失败时抛出 NetworkError
- 同一 id 在多个查询中重复出现时只保留第一次
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence

import requests
from pydantic import ValidationError

from skill_search.core.exceptions import NetworkError
from skill_search.core.models import FetchedSkill
from skill_search.infra.logging import get_logger

DEFAULT_QUERIES: Sequence[str] = (
    "", "a", "e", "i", "o", "u", "s", "t", "n", "r",
    "code", "docker", "git", "api", "test", "debug",
    "python", "rust", "javascript", "typescript",
)


class SkillsShSource:
    """skills.sh 社区注册源（非权威）。"""

    name = "skillssh"
    trusted = False

    def __init__(
        self,
        session: requests.Session,
        base_url: str = "https://skills.sh",
        queries: Optional[Sequence[str]] = None,
        page_limit: int = 100,
        timeout: float = 30,
    ):
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.queries = list(DEFAULT_QUERIES if queries is None else queries)
        self.page_limit = int(page_limit)
        self.timeout = timeout
        self.logger = get_logger(__name__)

    @property
    def validator(self) -> Optional[str]:
        return None

    def fetch(self) -> Iterable[FetchedSkill]:
        seen: Dict[str, FetchedSkill] = {}
        failures = 0
        for query in self.queries:
            items = self._search(query)
            if items is None:
                failures += 1
                continue
            for item in items:
                skill = self._to_fetched(item)
                if skill is not None and skill.external_id not in seen:
                    seen[skill.external_id] = skill

        if self.queries and failures == len(self.queries):
            raise NetworkError(f"skills.sh 所有查询均失败 ({failures} 次)")
        self.logger.info(f"skills.sh 共获取 {len(seen)} 个技能")
        return list(seen.values())

    def _search(self, query: str) -> Optional[List[Dict[str, Any]]]:
        url = f"{self.base_url}/api/search"
        try:
            resp = self.session.get(
                url, params={"q": query, "limit": self.page_limit}, timeout=self.timeout
            )
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            self.logger.debug(f"skills.sh 查询 {query!r} 失败: {e}")
            return None
        if not isinstance(data, dict):
            self.logger.debug(f"skills.sh 查询 {query!r} 返回的不是 JSON 对象，已跳过")
            return None
        skills = data.get("skills") or []
        return skills if isinstance(skills, list) else []

    def _to_fetched(self, item: Any) -> Optional[FetchedSkill]:
        if not isinstance(item, dict):
            self.logger.debug(f"skills.sh 条目格式不正确，已跳过: {item!r}")
            return None
        skill_id = str(item.get("id") or "")
        if not skill_id:
            return None
        source = str(item.get("topSource") or "")
        if source:
            leaf = skill_id.split("/")[-1]
            url = f"https://github.com/{source}/tree/main/skills/{leaf}"
            description = f"From {source}"
        else:
            url = f"{self.base_url}/skills/{skill_id}"
            description = ""
        try:
            return FetchedSkill(
                external_id=skill_id,
                name=str(item.get("name") or skill_id),
                popularity=int(item.get("installs") or 0),
                description=description,
                url=url,
            )
        except (ValueError, TypeError, ValidationError) as e:
            self.logger.warning(f"skills.sh 条目 {skill_id} 字段不合法，已跳过: {e}")
            return None
