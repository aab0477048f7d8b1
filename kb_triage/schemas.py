# schemas.py
import uuid
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChatTurn(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    text: str
    role: Literal["user", "assistant"]


class ChatReply(ChatTurn):
    role: Literal["user", "assistant"] = "assistant"
    source: Literal["model", "fallback", "timeout"] = "model"
    # Set when the reply is degraded (timeout, auth, rate_limit, ...)
    category: Optional[str] = None


class TriageText(BaseModel):
    model_config = ConfigDict(frozen=True)

    summary: str
    next_steps: str
    raw_text: str
    # False when no "Issue Summary:" marker was found
    structured: bool = False


class TicketRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    id: str
    url: str


class TicketResult(BaseModel):
    success: bool
    message: str
    ticketKey: Optional[str] = None
    ticketId: Optional[str] = None
    ticketUrl: Optional[str] = None
    error: Optional[str] = None


class Endpoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    method: str = "GET"


class EndpointAttempt(BaseModel):
    endpoint: str
    status: Optional[int] = None
    error: Optional[str] = None
    success: bool = False


class SpaceRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    key: str
    name: str


class PublishResult(BaseModel):
    success: bool
    strategyUsed: Optional[Literal["primary", "legacy", "ticket-fallback"]] = None
    message: str
    articleUrl: Optional[str] = None
    pageId: Optional[str] = None
    pageTitle: Optional[str] = None
    spaceKey: Optional[str] = None
    # Discovery trail for diagnostics
    attempts: List[EndpointAttempt] = Field(default_factory=list)


class ConnectivityReport(BaseModel):
    success: bool
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


# ----------------- HTTP request bodies -----------------
class ChatRequest(BaseModel):
    message: str


class TicketRequest(BaseModel):
    issueData: str
    projectKey: str


class PublishRequest(BaseModel):
    ticketKey: str
    ticketUrl: str
    issueData: str
    projectKey: Optional[str] = None
    ticketId: Optional[str] = None
