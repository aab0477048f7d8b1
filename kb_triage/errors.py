# errors.py
from typing import List, Optional

from .schemas import EndpointAttempt


class TriageError(Exception):
    """Base class for every failure the triage pipeline reports."""


class ProviderUnavailable(TriageError):
    """No AI credential configured, so no client was built."""


class ProviderError(TriageError):
    def __init__(self, message: str, category: str = "unknown"):
        super().__init__(message)
        self.category = category


class ResponderTimeout(TriageError):
    def __init__(self, timeout_ms: int):
        super().__init__(f"Request timeout after {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class TrackerError(TriageError):
    """The issue tracker rejected a request. `detail` is the tracker's own message."""

    def __init__(self, detail: str, status: Optional[int] = None):
        super().__init__(detail)
        self.detail = detail
        self.status = status


class NoWorkingEndpoint(TriageError):
    def __init__(self, attempts: List[EndpointAttempt]):
        tried = "; ".join(
            f"{a.endpoint} -> {a.status if a.status is not None else a.error}" for a in attempts
        )
        super().__init__(f"No working endpoint (tried: {tried or 'none'})")
        self.attempts = attempts


class NoSpaceAvailable(TriageError):
    def __init__(self, message: str, attempts: Optional[List[EndpointAttempt]] = None):
        super().__init__(message)
        self.attempts = attempts or []
