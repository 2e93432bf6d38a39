"""GitHub 仓库注册源

职责：遍历仓库目录树，读取每个 SKILL.md 的 YAML front matter，交付 FetchedSkill。

流程：
1) GET /repos/{repo}/git/trees/{branch}?recursive=1，记录响应 ETag 作为 validator
2) 对每个 SKILL.md 拉取原始文本，解析 name / description / version
3) 热度取仓库的 stargazers_count（所有技能共用）

说明：目录树获取失败抛出 NetworkError；单个文件失败记录日志后跳过。
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Tuple
import posixpath

import requests
import yaml

from skill_search.core.exceptions import NetworkError
from skill_search.core.models import FetchedSkill
from skill_search.infra.logging import get_logger

API_BASE = "https://api.github.com"
RAW_BASE = "https://raw.githubusercontent.com"
SKILL_FILENAME = "SKILL.md"


def parse_front_matter(text: str) -> Tuple[Dict[str, Any], str]:
    """拆分 SKILL.md 的 YAML front matter 与正文。

    Returns:
        (元数据字典, 正文)；没有 front matter 或 YAML 无法解析时元数据为空字典
    """
    content = text or ""
    if not content.lstrip().startswith("---"):
        return {}, content
    parts = content.lstrip().split("---", 2)
    if len(parts) < 3:
        return {}, content
    try:
        data = yaml.safe_load(parts[1])
    except yaml.YAMLError:
        return {}, content
    if not isinstance(data, dict):
        return {}, parts[2].lstrip("\n")
    return data, parts[2].lstrip("\n")


def _meta_str(meta: Dict[str, Any], key: str) -> Optional[str]:
    value = meta.get(key)
    if value is None and isinstance(meta.get("metadata"), dict):
        value = meta["metadata"].get(key)
    if value is None:
        return None
    return str(value).strip() or None


class GitHubRepoSource:
    """以 GitHub 仓库为载体的权威注册源（anthropic / openai）。"""

    def __init__(
        self,
        name: str,
        repo: str,
        session: requests.Session,
        branch: str = "main",
        trusted: bool = True,
        timeout: float = 30,
        token: Optional[str] = None,
    ):
        self.name = name
        self.repo = repo
        self.branch = branch
        self.trusted = trusted
        self.session = session
        self.timeout = timeout
        self.token = token
        self._validator: Optional[str] = None
        self.logger = get_logger(__name__)

    @property
    def validator(self) -> Optional[str]:
        return self._validator

    def _api_headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def fetch(self) -> Iterable[FetchedSkill]:
        paths = self._list_skill_files()
        stars = self._repo_stars()

        skills: List[FetchedSkill] = []
        seen = set()
        for path in paths:
            skill = self._fetch_skill(path, stars)
            if skill is None or skill.external_id in seen:
                continue
            seen.add(skill.external_id)
            skills.append(skill)
        self.logger.info(f"{self.name}: 从 {self.repo} 获取 {len(skills)} 个技能")
        return skills

    def _list_skill_files(self) -> List[str]:
        url = f"{API_BASE}/repos/{self.repo}/git/trees/{self.branch}"
        try:
            resp = self.session.get(
                url, params={"recursive": "1"}, headers=self._api_headers(), timeout=self.timeout
            )
            resp.raise_for_status()
            tree = resp.json().get("tree") or []
        except (requests.RequestException, ValueError) as e:
            raise NetworkError(f"无法获取 {self.repo} 的目录树: {e}") from e

        self._validator = resp.headers.get("ETag")
        return sorted(
            entry["path"]
            for entry in tree
            if entry.get("type") == "blob" and posixpath.basename(entry.get("path", "")) == SKILL_FILENAME
        )

    def _repo_stars(self) -> int:
        try:
            resp = self.session.get(
                f"{API_BASE}/repos/{self.repo}", headers=self._api_headers(), timeout=self.timeout
            )
            resp.raise_for_status()
            return int(resp.json().get("stargazers_count") or 0)
        except (requests.RequestException, ValueError) as e:
            self.logger.warning(f"无法获取 {self.repo} 的 star 数，按 0 处理: {e}")
            return 0

    def _fetch_skill(self, path: str, stars: int) -> Optional[FetchedSkill]:
        skill_dir = posixpath.dirname(path)
        if not skill_dir:
            # 仓库根目录的 SKILL.md 不对应具体技能
            return None
        raw_url = f"{RAW_BASE}/{self.repo}/{self.branch}/{path}"
        try:
            resp = self.session.get(raw_url, timeout=self.timeout)
            resp.raise_for_status()
            text = resp.text
        except requests.RequestException as e:
            self.logger.debug(f"跳过 {path}: {e}")
            return None

        meta, _ = parse_front_matter(text)
        dir_name = posixpath.basename(skill_dir)
        return FetchedSkill(
            external_id=dir_name,
            name=_meta_str(meta, "name") or dir_name,
            popularity=stars,
            description=_meta_str(meta, "description"),
            url=f"https://github.com/{self.repo}/tree/{self.branch}/{skill_dir}",
            skill_md=text,
            version=_meta_str(meta, "version"),
        )
