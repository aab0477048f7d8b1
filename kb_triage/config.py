# config.py
import os
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict


def _csv(value: Optional[str], default: str) -> Tuple[str, ...]:
    raw = value if value is not None and value.strip() else default
    return tuple(p.strip() for p in raw.split(",") if p.strip())


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    # ----------------- AI provider -----------------
    openai_api_key: Optional[str] = None
    openai_base: Optional[str] = None
    openai_org_id: Optional[str] = None
    model: str = "gpt-4o-mini"
    ai_timeout_ms: int = 8000

    # ----------------- Atlassian site -----------------
    site_url: str = "https://your-domain.atlassian.net"
    atlassian_email: Optional[str] = None
    atlassian_api_token: Optional[str] = None
    http_timeout: float = 15.0

    # ----------------- Tickets -----------------
    issue_type: str = "Task"
    priority: str = "Medium"

    # ----------------- Knowledge base -----------------
    kb_space_name: str = "Tickettele"
    kb_fallback_labels: Tuple[str, ...] = ("knowledge-base", "ai-triage")

    # Ordered endpoint candidates, tried first to last
    primary_space_endpoints: Tuple[str, ...] = ("/wiki/api/v2/spaces",)
    primary_page_endpoints: Tuple[str, ...] = ("/wiki/api/v2/pages",)
    legacy_space_endpoints: Tuple[str, ...] = ("/wiki/rest/api/space",)
    legacy_page_endpoints: Tuple[str, ...] = ("/wiki/rest/api/content",)
    connectivity_endpoints: Tuple[str, ...] = ("/wiki/api/v2/spaces", "/wiki/rest/api/content")

    @property
    def base_url(self) -> str:
        return self.site_url.rstrip("/")

    @classmethod
    def from_env(cls) -> "Settings":
        env = os.getenv
        return cls(
            openai_api_key=env("OPENAI_API_KEY") or None,
            openai_base=env("OPENAI_BASE") or None,  # blank for official
            openai_org_id=env("OPENAI_ORG_ID") or env("OPENAI_ORGANIZATION") or None,
            model=env("MODEL", "gpt-4o-mini"),
            ai_timeout_ms=int(env("AI_TIMEOUT_MS", "8000")),
            site_url=env("SITE_URL", "https://your-domain.atlassian.net"),
            atlassian_email=env("ATLASSIAN_EMAIL") or None,
            atlassian_api_token=env("ATLASSIAN_API_TOKEN") or None,
            http_timeout=float(env("HTTP_TIMEOUT", "15")),
            issue_type=env("JIRA_ISSUE_TYPE", "Task"),
            priority=env("JIRA_PRIORITY", "Medium"),
            kb_space_name=env("KB_SPACE_NAME", "Tickettele"),
            kb_fallback_labels=_csv(env("KB_FALLBACK_LABELS"), "knowledge-base,ai-triage"),
            primary_space_endpoints=_csv(env("PRIMARY_SPACE_ENDPOINTS"), "/wiki/api/v2/spaces"),
            primary_page_endpoints=_csv(env("PRIMARY_PAGE_ENDPOINTS"), "/wiki/api/v2/pages"),
            legacy_space_endpoints=_csv(env("LEGACY_SPACE_ENDPOINTS"), "/wiki/rest/api/space"),
            legacy_page_endpoints=_csv(env("LEGACY_PAGE_ENDPOINTS"), "/wiki/rest/api/content"),
            connectivity_endpoints=_csv(
                env("CONNECTIVITY_ENDPOINTS"), "/wiki/api/v2/spaces,/wiki/rest/api/content"
            ),
        )
