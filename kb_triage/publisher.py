# publisher.py
"""
Knowledge-base publishing with tiered fallback.

Tiers run strictly in order and each one runs at most once:

1. primary          - Confluence v2 pages API, ADF body
2. legacy           - Confluence REST content API, storage (XHTML) body
3. ticket-fallback  - no article; the rendered entry is added to the Jira issue
                      as a comment and the issue gets the knowledge-base labels

Any error inside a tier ends that tier and moves on to the next one. The
failure is logged once, here, at the tier boundary. Only when the last tier
fails too does publish() report success=False, carrying that last error.
"""
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import requests

from . import codec
from .atlassian import ContentClient, TrackerClient
from .config import Settings
from .errors import NoWorkingEndpoint, TriageError
from .logs import log_event
from .probe import EndpointProbe, SpaceResolver, endpoints
from .schemas import Endpoint, EndpointAttempt, PublishResult, SpaceRef, TicketRef, TriageText

Tier = Callable[[TicketRef, TriageText, str, List[EndpointAttempt]], PublishResult]


class KnowledgePublisher:
    def __init__(
        self,
        content: ContentClient,
        tracker: TrackerClient,
        settings: Settings,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.probe = EndpointProbe(content)
        self.resolver = SpaceResolver(self.probe, settings.kb_space_name)
        self.tracker = tracker
        self.base_url = settings.base_url
        self.fallback_labels = tuple(settings.kb_fallback_labels)
        self.clock = clock or (lambda: datetime.now(timezone.utc))

        self.primary_spaces = endpoints(settings.primary_space_endpoints)
        self.primary_pages = endpoints(settings.primary_page_endpoints, "POST")
        self.legacy_spaces = endpoints(settings.legacy_space_endpoints)
        self.legacy_pages = endpoints(settings.legacy_page_endpoints, "POST")

    # ----------------- Public API -----------------
    def publish(
        self,
        ticket: TicketRef,
        triage: Union[TriageText, str],
        project_key: Optional[str] = None,
    ) -> PublishResult:
        if not isinstance(triage, TriageText):
            triage = codec.parse(triage)
        title = codec.article_title(triage, ticket.key)
        trail: List[EndpointAttempt] = []

        tiers = (
            ("primary", self._primary),
            ("legacy", self._legacy),
            ("ticket-fallback", self._ticket_fallback),
        )
        last_error = "no publishing tier attempted"
        for name, tier in tiers:
            result = self._attempt(name, tier, ticket, triage, title, trail)
            if result.success:
                log_event("knowledge base entry published", tier=name, ticket_key=ticket.key,
                          project=project_key, url=result.articleUrl)
                return result.model_copy(update={"attempts": list(trail)})
            last_error = result.message

        log_event("knowledge base publishing failed", "ERROR",
                  ticket_key=ticket.key, project=project_key, error=last_error)
        return PublishResult(
            success=False,
            message=f"Failed to publish to Knowledge Base: {last_error}",
            attempts=list(trail),
        )

    # ----------------- Tier boundary -----------------
    def _attempt(
        self,
        name: str,
        tier: Tier,
        ticket: TicketRef,
        triage: TriageText,
        title: str,
        trail: List[EndpointAttempt],
    ) -> PublishResult:
        try:
            return tier(ticket, triage, title, trail)
        except Exception as exc:  # any tier error means fall through
            log_event("publish tier failed", "WARNING",
                      tier=name, ticket_key=ticket.key, error=str(exc), error_type=type(exc).__name__)
            return PublishResult(success=False, strategyUsed=name, message=str(exc) or repr(exc))

    def _create(
        self, candidates: Sequence[Endpoint], payload: Dict[str, Any], trail: List[EndpointAttempt]
    ) -> requests.Response:
        try:
            resp, attempts = self.probe.probe(candidates, payload)
        except NoWorkingEndpoint as exc:
            trail.extend(exc.attempts)
            raise TriageError(f"Failed to create Confluence page. {exc}") from exc
        trail.extend(attempts)
        return resp

    def article_url(self, space: SpaceRef, page_id: str) -> str:
        return f"{self.base_url}/wiki/spaces/{space.key}/pages/{page_id}"

    def _article(self, strategy: str, resp: requests.Response, space: SpaceRef, title: str, message: str) -> PublishResult:
        try:
            data = resp.json()
        except ValueError:
            data = {}
        page_id = data.get("id") if isinstance(data, dict) else None
        if not page_id:
            raise TriageError("Confluence response did not include a page id")
        return PublishResult(
            success=True,
            strategyUsed=strategy,
            message=message,
            articleUrl=self.article_url(space, str(page_id)),
            pageId=str(page_id),
            pageTitle=title,
            spaceKey=space.key,
        )

    # ----------------- Tiers -----------------
    def _primary(
        self, ticket: TicketRef, triage: TriageText, title: str, trail: List[EndpointAttempt]
    ) -> PublishResult:
        space = self.resolver.resolve(self.primary_spaces, trail)
        payload = {
            "spaceId": space.id,  # v2 takes the id, not the key
            "status": "current",
            "title": title,
            "body": {
                "representation": codec.ADF,
                "value": codec.render(title, ticket, triage, codec.ADF, self.clock()),
            },
        }
        resp = self._create(self.primary_pages, payload, trail)
        return self._article("primary", resp, space, title,
                             "Successfully created Confluence Knowledge Base page using v2 API")

    def _legacy(
        self, ticket: TicketRef, triage: TriageText, title: str, trail: List[EndpointAttempt]
    ) -> PublishResult:
        # resolved again: the primary tier may have failed before resolving
        space = self.resolver.resolve(self.legacy_spaces, trail)
        payload = {
            "type": "page",
            "title": title,
            "space": {"key": space.key},
            "body": {
                codec.STORAGE: {
                    "value": codec.render(title, ticket, triage, codec.STORAGE, self.clock()),
                    "representation": codec.STORAGE,
                }
            },
        }
        resp = self._create(self.legacy_pages, payload, trail)
        return self._article("legacy", resp, space, title,
                             "Successfully created Confluence Knowledge Base page using the legacy content API")

    def _ticket_fallback(
        self, ticket: TicketRef, triage: TriageText, title: str, trail: List[EndpointAttempt]
    ) -> PublishResult:
        self.tracker.add_comment(ticket.key, codec.adf_document(title, ticket, triage, self.clock()))
        self.tracker.update_labels(ticket.key, self.fallback_labels)
        return PublishResult(
            success=True,
            strategyUsed="ticket-fallback",
            message=f"Confluence unavailable; knowledge base entry added to {ticket.key} as a comment",
            articleUrl=ticket.url,
            pageId=ticket.key,
            pageTitle=title,
        )
