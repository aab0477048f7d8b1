"""
Shared fixtures: a scripted Atlassian transport and ready-wired components.
"""

from datetime import datetime, timezone

import pytest

from kb_triage.agent import AIResponder
from kb_triage.atlassian import ContentClient, TrackerClient
from kb_triage.config import Settings
from kb_triage.publisher import KnowledgePublisher
from kb_triage.service import TriageAssistant
from kb_triage.tickets import TicketService

SITE = "https://example.atlassian.net"
FIXED_NOW = datetime(2024, 12, 17, 10, 0, tzinfo=timezone.utc)


class FakeResponse:
    """Just enough of requests.Response for the clients."""

    def __init__(self, status_code=200, data=None, reason=""):
        self.status_code = status_code
        self._data = data
        self.reason = reason

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._data is None:
            raise ValueError("No JSON body")
        return self._data


class FakeTransport:
    """Stands in for AtlassianSession. Routes are keyed by (method, path).

    A route value may be a FakeResponse, an exception to raise, a callable
    taking the payload, or a list consumed one item per call.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def request(self, method, path, payload=None):
        self.calls.append((method, path, payload))
        handler = self.routes.get((method, path))
        if isinstance(handler, list):
            handler = handler.pop(0)
        if handler is None:
            return FakeResponse(404, {"message": "Not Found"}, "Not Found")
        if isinstance(handler, Exception):
            raise handler
        if callable(handler):
            return handler(payload)
        return handler

    def paths(self, method=None):
        return [p for m, p, _ in self.calls if method is None or m == method]


@pytest.fixture
def settings():
    return Settings(site_url=SITE, kb_space_name="Tickettele")


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def publisher(transport, settings):
    return KnowledgePublisher(
        ContentClient(transport), TrackerClient(transport), settings, clock=lambda: FIXED_NOW
    )


@pytest.fixture
def ticket_service(transport, settings):
    return TicketService(TrackerClient(transport), settings)


@pytest.fixture
def assistant(transport, settings, publisher, ticket_service):
    return TriageAssistant(
        responder=AIResponder(provider=None),
        tickets=ticket_service,
        publisher=publisher,
        probe=publisher.probe,
        connectivity_endpoints=list(settings.connectivity_endpoints),
    )
