# main.py
import time
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import JSONResponse

from .config import Settings
from .logs import log_event
from .schemas import (
    ChatReply,
    ChatRequest,
    ConnectivityReport,
    PublishRequest,
    PublishResult,
    TicketRequest,
    TicketResult,
)
from .service import TriageAssistant

app = FastAPI(title="AI Triage & Knowledge Base API")

_assistant: Optional[TriageAssistant] = None


def get_assistant() -> TriageAssistant:
    # built once per process; the AI client inside lives as long as the process
    global _assistant
    if _assistant is None:
        _assistant = TriageAssistant.from_settings(Settings.from_env())
    return _assistant


@app.get("/healthz")
def healthz():
    return {"status": "ok", "time": int(time.time())}


@app.get("/_ready")
def ready():
    try:
        _ = get_assistant()
        return {"ready": True}
    except Exception as exc:
        return JSONResponse({"ready": False, "error": str(exc)}, status_code=503)


@app.post("/chat", response_model=ChatReply)
def chat(req: ChatRequest, assistant: TriageAssistant = Depends(get_assistant)):
    if not req.message.strip():
        raise HTTPException(status_code=400, detail="'message' is required")
    return assistant.respond(req.message)


@app.post("/tickets", response_model=TicketResult)
def create_ticket(req: TicketRequest, assistant: TriageAssistant = Depends(get_assistant)):
    if not req.projectKey.strip():
        raise HTTPException(status_code=400, detail="'projectKey' is required")
    return assistant.create_ticket(req.issueData, req.projectKey)


@app.post("/publish", response_model=PublishResult)
def publish(req: PublishRequest, assistant: TriageAssistant = Depends(get_assistant)):
    try:
        return assistant.publish(
            ticket_key=req.ticketKey,
            ticket_url=req.ticketUrl,
            issue_data=req.issueData,
            project_key=req.projectKey,
            ticket_id=req.ticketId,
        )
    except Exception as exc:
        log_event("publish crashed", "ERROR", ticket_key=req.ticketKey, error=repr(exc))
        raise HTTPException(status_code=500, detail=f"Publish failed: {exc}") from exc


@app.get("/_diag/content", response_model=ConnectivityReport)
def diag_content(assistant: TriageAssistant = Depends(get_assistant)):
    return assistant.test_connectivity()
