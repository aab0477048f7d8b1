"""Tests for ticket creation."""

import itertools

import pytest
import requests

from kb_triage.errors import TrackerError

from .conftest import FakeResponse

CREATE = ("POST", "/rest/api/3/issue")


def created_sequence():
    counter = itertools.count(1)
    return lambda payload: FakeResponse(201, {"key": f"SUP-{next(counter)}", "id": "100"})


class TestCreateTicket:
    def test_creates_issue_from_triage_text(self, transport, ticket_service):
        transport.routes[CREATE] = FakeResponse(201, {"key": "SUP-7", "id": "10007"})
        text = "Issue Summary: disk full\nNext Steps: escalate to storage team"

        ticket = ticket_service.create_ticket(text, "SUP")

        assert ticket.key == "SUP-7"
        assert ticket.id == "10007"
        assert ticket.url == "https://example.atlassian.net/browse/SUP-7"

        _, _, payload = transport.calls[0]
        fields = payload["fields"]
        assert fields["project"] == {"key": "SUP"}
        assert fields["summary"] == "disk full"
        assert fields["issuetype"] == {"name": "Task"}
        assert fields["priority"] == {"name": "Medium"}
        texts = [p["content"][0]["text"] for p in fields["description"]["content"]]
        assert texts == ["Issue Summary: disk full", "Next Steps: escalate to storage team"]

    def test_unstructured_text_gets_default_title(self, transport, ticket_service):
        transport.routes[CREATE] = FakeResponse(201, {"key": "SUP-8", "id": "10008"})

        ticket_service.create_ticket("printer is on fire", "SUP")

        fields = transport.calls[0][2]["fields"]
        assert fields["summary"] == "AI Assistant Issue"
        assert fields["description"]["content"][0]["content"][0]["text"] == "printer is on fire"

    def test_rejection_carries_tracker_detail(self, transport, ticket_service):
        transport.routes[CREATE] = FakeResponse(
            400, {"errorMessages": ["Project 'NOPE' does not exist.", "Try again"], "errors": {}}
        )

        with pytest.raises(TrackerError) as info:
            ticket_service.create_ticket("Issue Summary: x", "NOPE")

        assert info.value.detail == "Project 'NOPE' does not exist., Try again"
        assert info.value.status == 400

    def test_field_errors_are_reported(self, transport, ticket_service):
        transport.routes[CREATE] = FakeResponse(400, {"errorMessages": [], "errors": {"priority": "invalid"}})

        with pytest.raises(TrackerError, match="priority: invalid"):
            ticket_service.create_ticket("Issue Summary: x", "SUP")

    def test_transport_failure_is_a_tracker_error(self, transport, ticket_service):
        transport.routes[CREATE] = requests.ConnectionError("no route to host")

        with pytest.raises(TrackerError, match="no route to host"):
            ticket_service.create_ticket("Issue Summary: x", "SUP")

    def test_not_idempotent(self, transport, ticket_service):
        transport.routes[CREATE] = created_sequence()

        first = ticket_service.create_ticket("Issue Summary: same", "SUP")
        second = ticket_service.create_ticket("Issue Summary: same", "SUP")

        assert first.key != second.key
        assert transport.paths("POST").count("/rest/api/3/issue") == 2


class TestCreateTicketPayload:
    def test_failure_payload_message(self, transport, assistant):
        transport.routes[CREATE] = FakeResponse(400, {"errorMessages": ["Project 'NOPE' does not exist."]})

        result = assistant.create_ticket("Issue Summary: x", "NOPE")

        assert result.success is False
        assert "Project 'NOPE' does not exist." in result.message
        assert result.error == "Project 'NOPE' does not exist."

    def test_success_payload(self, transport, assistant):
        transport.routes[CREATE] = FakeResponse(201, {"key": "SUP-9", "id": "10009"})

        result = assistant.create_ticket("Issue Summary: x", "SUP")

        assert result.success is True
        assert result.ticketKey == "SUP-9"
        assert result.message == "Ticket SUP-9 created successfully!"
