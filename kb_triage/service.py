# service.py
from typing import Any, Dict, List, Optional

import requests

from .agent import AIResponder, Provider, build_provider
from .atlassian import AtlassianSession, ContentClient, TrackerClient
from .config import Settings
from .errors import NoWorkingEndpoint, TrackerError
from .logs import log_event
from .probe import EndpointProbe, endpoints, space_items
from .publisher import KnowledgePublisher
from .schemas import ChatReply, ConnectivityReport, PublishResult, TicketRef, TicketResult
from .tickets import TicketService

_UNSET: Any = object()


def _space_summary(item: Dict[str, Any]) -> Dict[str, str]:
    # content items carry their space nested
    src = item["space"] if isinstance(item.get("space"), dict) else item
    return {
        "key": str(src.get("key") or src.get("id") or "unknown"),
        "name": str(src.get("name") or src.get("title") or item.get("title") or "Unknown"),
    }


class TriageAssistant:
    """The caller-facing operations. Every method returns a result payload; none raise for domain failures."""

    def __init__(
        self,
        responder: AIResponder,
        tickets: TicketService,
        publisher: KnowledgePublisher,
        probe: EndpointProbe,
        connectivity_endpoints: List[str],
    ):
        self.responder = responder
        self.tickets = tickets
        self.publisher = publisher
        self.probe = probe
        self.connectivity_endpoints = endpoints(connectivity_endpoints)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        provider: Optional[Provider] = _UNSET,
        http: Optional[requests.Session] = None,
    ) -> "TriageAssistant":
        if provider is _UNSET:
            provider = build_provider(settings)
        transport = AtlassianSession(settings, http)
        tracker = TrackerClient(transport)
        content = ContentClient(transport)
        publisher = KnowledgePublisher(content, tracker, settings)
        return cls(
            responder=AIResponder(provider, timeout_ms=settings.ai_timeout_ms),
            tickets=TicketService(tracker, settings),
            publisher=publisher,
            probe=publisher.probe,
            connectivity_endpoints=list(settings.connectivity_endpoints),
        )

    def respond(self, message: str) -> ChatReply:
        return self.responder.reply(message)

    def create_ticket(self, issue_data: str, project_key: str) -> TicketResult:
        try:
            ticket = self.tickets.create_ticket(issue_data, project_key)
        except TrackerError as exc:
            log_event("ticket creation failed", "ERROR", project=project_key, status=exc.status, error=exc.detail)
            return TicketResult(success=False, error=exc.detail, message=f"Failed to create ticket: {exc.detail}")
        return TicketResult(
            success=True,
            ticketKey=ticket.key,
            ticketId=ticket.id,
            ticketUrl=ticket.url,
            message=f"Ticket {ticket.key} created successfully!",
        )

    def publish(
        self,
        ticket_key: str,
        ticket_url: Optional[str],
        issue_data: str,
        project_key: Optional[str] = None,
        ticket_id: Optional[str] = None,
    ) -> PublishResult:
        ticket = TicketRef(
            key=ticket_key,
            id=ticket_id or "",
            url=ticket_url or self.tickets.ticket_url(ticket_key),
        )
        return self.publisher.publish(ticket, issue_data, project_key)

    def test_connectivity(self) -> ConnectivityReport:
        try:
            resp, trail = self.probe.probe(self.connectivity_endpoints)
        except NoWorkingEndpoint as exc:
            return ConnectivityReport(
                success=False,
                message="All Confluence API endpoints failed. Confluence may not be properly configured or accessible.",
                details={"attempts": [a.model_dump() for a in exc.attempts]},
            )

        try:
            data = resp.json()
        except ValueError:
            data = None
        items = space_items(data)
        endpoint = trail[-1].endpoint
        return ConnectivityReport(
            success=True,
            message=f"Confluence is accessible via {endpoint}",
            details={
                "endpoint": endpoint,
                "spaces": len(items),
                "spaceList": [_space_summary(i) for i in items[:5]],
                "attempts": [a.model_dump() for a in trail],
            },
        )
