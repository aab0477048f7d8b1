# atlassian.py
import json
from typing import Any, Dict, Iterable, Optional

import requests

from .config import Settings
from .errors import TrackerError
from .schemas import Endpoint


class AtlassianSession:
    """Thin requests wrapper bound to one Atlassian site. Auth comes from the host environment."""

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.base_url = settings.base_url
        self.timeout = settings.http_timeout
        self._http = session or requests.Session()
        if settings.atlassian_email and settings.atlassian_api_token:
            self._http.auth = (settings.atlassian_email, settings.atlassian_api_token)
        self._http.headers.update({"Accept": "application/json"})

    def request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> requests.Response:
        return self._http.request(method, self.base_url + path, json=payload, timeout=self.timeout)


# ----------------- Error detail -----------------
def _json(resp: requests.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return {}


def tracker_error_detail(resp: requests.Response, default: str) -> str:
    data = _json(resp)
    if not isinstance(data, dict):
        return default
    messages = data.get("errorMessages") or []
    if messages:
        return ", ".join(str(m) for m in messages)
    errors = data.get("errors") or {}
    if isinstance(errors, dict) and errors:
        return ", ".join(f"{k}: {v}" for k, v in errors.items())
    return default


def content_error_detail(resp: requests.Response) -> str:
    data = _json(resp)
    if isinstance(data, dict) and data:
        errors = data.get("errors")
        first = errors[0] if isinstance(errors, list) and errors and isinstance(errors[0], dict) else {}
        detail = first.get("detail")
        for candidate in (
            data.get("message"),
            first.get("message"),
            detail.get("message") if isinstance(detail, dict) else None,
            data.get("detail"),
            data.get("reason"),
        ):
            if candidate:
                return str(candidate)
        return json.dumps(data, ensure_ascii=False)
    return resp.reason or f"HTTP {resp.status_code}"


# ----------------- Issue tracker -----------------
class TrackerClient:
    def __init__(self, transport: AtlassianSession):
        self.transport = transport

    def _call(self, method: str, path: str, payload: Dict[str, Any], failure: str) -> requests.Response:
        try:
            resp = self.transport.request(method, path, payload)
        except requests.RequestException as exc:
            raise TrackerError(f"{failure}: {exc}") from exc
        if not resp.ok:
            raise TrackerError(tracker_error_detail(resp, failure), status=resp.status_code)
        return resp

    def create_issue(
        self, project_key: str, title: str, body: Dict[str, Any], issue_type: str, priority: str
    ) -> Dict[str, Any]:
        payload = {
            "fields": {
                "project": {"key": project_key},
                "summary": title,
                "description": body,
                "issuetype": {"name": issue_type},
                "priority": {"name": priority},
            }
        }
        resp = self._call("POST", "/rest/api/3/issue", payload, "Failed to create ticket")
        return _json(resp)

    def add_comment(self, issue_key: str, body: Dict[str, Any]) -> Dict[str, Any]:
        resp = self._call(
            "POST", f"/rest/api/3/issue/{issue_key}/comment", {"body": body}, "Failed to add comment"
        )
        return _json(resp)

    def update_labels(self, issue_key: str, add_labels: Iterable[str]) -> None:
        payload = {"update": {"labels": [{"add": label} for label in add_labels]}}
        self._call("PUT", f"/rest/api/3/issue/{issue_key}", payload, "Failed to update labels")


# ----------------- Content platform -----------------
class ContentClient:
    """Raw access to the content platform; callers pick the endpoint variant."""

    def __init__(self, transport: AtlassianSession):
        self.transport = transport

    def send(self, endpoint: Endpoint, payload: Optional[Dict[str, Any]] = None) -> requests.Response:
        return self.transport.request(endpoint.method, endpoint.path, payload)
