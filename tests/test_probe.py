"""Tests for ordered endpoint probing and space discovery."""

import pytest
import requests

from kb_triage.atlassian import ContentClient
from kb_triage.errors import NoSpaceAvailable, NoWorkingEndpoint
from kb_triage.probe import EndpointProbe, SpaceResolver, endpoints, parse_spaces, select_space
from kb_triage.schemas import SpaceRef

from .conftest import FakeResponse, FakeTransport

SPACES = {
    "results": [
        {"id": "101", "key": "ENG", "name": "Engineering"},
        {"id": "104", "key": "ARCH", "name": "Tickettele Archive"},
        {"id": "102", "key": "OPS", "name": "Ticket Tele Ops"},
        {"id": "103", "key": "TICKETTELE", "name": "Support KB"},
    ]
}


def make_probe(routes):
    transport = FakeTransport(routes)
    return EndpointProbe(ContentClient(transport)), transport


class TestEndpointProbe:
    def test_stops_at_first_success(self):
        probe, transport = make_probe({
            ("GET", "/e1"): FakeResponse(503, {"message": "Service Unavailable"}),
            ("GET", "/e2"): FakeResponse(200, {"results": []}),
            ("GET", "/e3"): FakeResponse(200, {"results": []}),
        })

        resp, trail = probe.probe(endpoints(["/e1", "/e2", "/e3"]))

        assert resp.status_code == 200
        assert len(trail) == 2
        assert trail[0].success is False and trail[0].status == 503
        assert trail[0].error == "Service Unavailable"
        assert trail[1].success is True
        assert "/e3" not in transport.paths()

    def test_transport_error_does_not_abort_probing(self):
        probe, _ = make_probe({
            ("GET", "/e1"): requests.ConnectionError("connection refused"),
            ("GET", "/e2"): FakeResponse(200, {}),
        })

        resp, trail = probe.probe(endpoints(["/e1", "/e2"]))

        assert resp.status_code == 200
        assert trail[0].status is None
        assert "connection refused" in trail[0].error

    def test_all_failing_reports_full_trail(self):
        probe, _ = make_probe({
            ("GET", "/e1"): FakeResponse(401, {"errors": [{"message": "Unauthorized"}]}),
            ("GET", "/e2"): requests.Timeout("read timed out"),
        })

        with pytest.raises(NoWorkingEndpoint) as info:
            probe.probe(endpoints(["/e1", "/e2"]))

        trail = info.value.attempts
        assert [a.endpoint for a in trail] == ["GET /e1", "GET /e2"]
        assert trail[0].error == "Unauthorized"
        assert not any(a.success for a in trail)

    def test_payload_is_forwarded(self):
        probe, transport = make_probe({("POST", "/pages"): FakeResponse(200, {"id": "1"})})

        probe.probe(endpoints(["/pages"], "POST"), {"title": "x"})

        assert transport.calls == [("POST", "/pages", {"title": "x"})]

    def test_redirect_status_is_not_success(self):
        probe, _ = make_probe({("GET", "/e1"): FakeResponse(302, None, "Found")})

        with pytest.raises(NoWorkingEndpoint) as info:
            probe.probe(endpoints(["/e1"]))

        assert info.value.attempts[0].error == "Found"


class TestSpaceSelection:
    spaces = parse_spaces(SPACES)

    def test_exact_key_match_is_case_insensitive(self):
        assert select_space(self.spaces, "Tickettele").id == "103"

    def test_key_match_beats_earlier_name_match(self):
        # ARCH comes first and its name contains the preferred name
        assert self.spaces[1].key == "ARCH"
        assert select_space(self.spaces, "TicketTele").key == "TICKETTELE"

    def test_name_match_when_no_key_matches(self):
        spaces = [s for s in self.spaces if s.key != "TICKETTELE"]

        assert select_space(spaces, "tickettele").key == "ARCH"

    def test_name_substring_match(self):
        assert select_space(self.spaces, "tele ops").key == "OPS"

    def test_first_space_otherwise(self):
        assert select_space(self.spaces, "nothing-like-this").key == "ENG"

    def test_empty_list_fails(self):
        with pytest.raises(NoSpaceAvailable):
            select_space([], "Tickettele")

    def test_parse_accepts_values_and_titles(self):
        spaces = parse_spaces({"values": [{"key": "KB", "title": "Knowledge"}, "junk", {}]})

        assert spaces == [SpaceRef(id="KB", key="KB", name="Knowledge")]


class TestSpaceResolver:
    def test_resolves_from_first_working_endpoint(self):
        probe, _ = make_probe({
            ("GET", "/v2/spaces"): FakeResponse(500, {"message": "oops"}),
            ("GET", "/rest/space"): FakeResponse(200, SPACES),
        })
        trail = []

        space = SpaceResolver(probe, "Tickettele").resolve(endpoints(["/v2/spaces", "/rest/space"]), trail)

        assert space.key == "TICKETTELE"
        assert len(trail) == 2

    def test_no_working_endpoint(self):
        probe, _ = make_probe({})
        trail = []

        with pytest.raises(NoSpaceAvailable) as info:
            SpaceResolver(probe, "Tickettele").resolve(endpoints(["/v2/spaces"]), trail)

        assert len(info.value.attempts) == 1
        assert trail[0].status == 404

    def test_empty_space_list(self):
        probe, _ = make_probe({("GET", "/v2/spaces"): FakeResponse(200, {"results": []})})

        with pytest.raises(NoSpaceAvailable):
            SpaceResolver(probe, "Tickettele").resolve(endpoints(["/v2/spaces"]))
