# logs.py
import json
import logging
import os
from typing import Any, Optional

# Structured logs go to jsonPayload when Cloud Logging is enabled
SERVICE = os.getenv("SERVICE_NAME", "kb-triage-api")
LOG_NAME = os.getenv("LOG_NAME", "kb-triage")
USE_CLOUD_LOGGING = os.getenv("USE_CLOUD_LOGGING", "false").lower() in ("1", "true", "yes")

_SEVERITY = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "NOTICE": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

_struct: Optional[Any] = None
_std = logging.getLogger(LOG_NAME)
if not _std.handlers:
    _handler = logging.StreamHandler()
    _handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    _std.addHandler(_handler)
    _std.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())


def _cloud_logger():
    global _struct
    if _struct is None:
        from google.cloud import logging as gcloud_logging
        _struct = gcloud_logging.Client().logger(LOG_NAME)
    return _struct


def log_event(msg: str, severity: str = "INFO", **fields: Any) -> None:
    payload = {"service": SERVICE, "msg": msg, **fields}
    if USE_CLOUD_LOGGING:
        _cloud_logger().log_struct(payload, severity=severity)
        return
    _std.log(
        _SEVERITY.get(severity.upper(), logging.INFO),
        "%s %s", msg, json.dumps(fields, ensure_ascii=False, default=str),
    )
