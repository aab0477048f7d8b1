# probe.py
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import requests

from .atlassian import ContentClient, content_error_detail
from .errors import NoSpaceAvailable, NoWorkingEndpoint
from .logs import log_event
from .schemas import Endpoint, EndpointAttempt, SpaceRef


def endpoints(paths: Iterable[str], method: str = "GET") -> List[Endpoint]:
    return [Endpoint(path=p, method=method) for p in paths]


def _label(endpoint: Endpoint) -> str:
    return f"{endpoint.method} {endpoint.path}"


class EndpointProbe:
    """Tries candidate endpoints strictly in order and stops at the first 2xx."""

    def __init__(self, client: ContentClient):
        self.client = client

    def probe(
        self, candidates: Sequence[Endpoint], payload: Optional[Dict[str, Any]] = None
    ) -> Tuple[requests.Response, List[EndpointAttempt]]:
        trail: List[EndpointAttempt] = []
        for endpoint in candidates:
            try:
                resp = self.client.send(endpoint, payload)
            except requests.RequestException as exc:
                trail.append(EndpointAttempt(endpoint=_label(endpoint), error=str(exc) or repr(exc)))
                log_event("endpoint unreachable", "WARNING", endpoint=_label(endpoint), error=repr(exc))
                continue

            if 200 <= resp.status_code < 300:
                trail.append(EndpointAttempt(endpoint=_label(endpoint), status=resp.status_code, success=True))
                return resp, trail

            detail = content_error_detail(resp)
            trail.append(EndpointAttempt(endpoint=_label(endpoint), status=resp.status_code, error=detail))
            log_event("endpoint failed", "WARNING",
                      endpoint=_label(endpoint), status=resp.status_code, error=detail)

        raise NoWorkingEndpoint(trail)


# ----------------- Spaces -----------------
def space_items(data: Any) -> List[Dict[str, Any]]:
    if isinstance(data, list):
        items = data
    elif isinstance(data, dict):
        items = data.get("results") or data.get("values") or []
    else:
        items = []
    return [i for i in items if isinstance(i, dict)]


def parse_spaces(data: Any) -> List[SpaceRef]:
    spaces = []
    for item in space_items(data):
        ident = item.get("id") or item.get("key")
        if not ident:
            continue
        key = item.get("key") or ident
        spaces.append(SpaceRef(id=str(ident), key=str(key), name=str(item.get("name") or item.get("title") or key)))
    return spaces


def select_space(spaces: Sequence[SpaceRef], preferred: str) -> SpaceRef:
    """Exact key match, then name substring (both case-insensitive), then the first space."""
    if not spaces:
        raise NoSpaceAvailable("No Confluence spaces found")
    pref = (preferred or "").strip().lower()
    if pref:
        for space in spaces:
            if space.key.lower() == pref:
                return space
        for space in spaces:
            if pref in space.name.lower():
                return space
    return spaces[0]


class SpaceResolver:
    def __init__(self, probe: EndpointProbe, preferred_name: str):
        self.probe = probe
        self.preferred_name = preferred_name

    def resolve(
        self, candidates: Sequence[Endpoint], trail: Optional[List[EndpointAttempt]] = None
    ) -> SpaceRef:
        """Discover spaces from the first working endpoint and pick one.

        Attempts are appended to `trail` when given. Nothing is cached between calls.
        """
        try:
            resp, attempts = self.probe.probe(candidates)
        except NoWorkingEndpoint as exc:
            if trail is not None:
                trail.extend(exc.attempts)
            raise NoSpaceAvailable(f"Cannot access Confluence spaces. {exc}", exc.attempts) from exc
        if trail is not None:
            trail.extend(attempts)

        try:
            data = resp.json()
        except ValueError:
            data = None
        space = select_space(parse_spaces(data), self.preferred_name)
        log_event("space resolved", space_id=space.id, space_key=space.key, space_name=space.name)
        return space
