"""注册源共用的 HTTP 设置

所有注册源通过 requests.Session 访问网络，统一超时与 User-Agent。
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests


@dataclass(frozen=True)
class HttpSettings:
    request_timeout: float = 30
    user_agent: str = "skill-search/0.1"
    github_token: Optional[str] = None

    @classmethod
    def from_config(cls, http_cfg: Dict[str, Any]) -> "HttpSettings":
        token_env = http_cfg.get("github_token_env") or ""
        return cls(
            request_timeout=float(http_cfg.get("request_timeout", cls.request_timeout)),
            user_agent=str(http_cfg.get("user_agent", cls.user_agent)),
            github_token=(os.environ.get(token_env) if token_env else None) or None,
        )


def create_session(settings: HttpSettings) -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": settings.user_agent})
    return session
