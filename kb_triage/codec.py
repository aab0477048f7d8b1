# codec.py
"""
The "Issue Summary / Next Steps" text protocol.

The AI step answers with two marker-prefixed lines:

    Issue Summary: <one-line summary>
    Next Steps: <who handles it / what to do>

Ticket titles and article titles are derived from that text, so parsing is
deliberately forgiving: a reply that does not follow the shape still parses,
with the summary degrading to the raw text and the next steps to a default.
Nothing in here raises on malformed input.
"""
import html
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .schemas import TicketRef, TriageText

SUMMARY_MARKER = "Issue Summary:"
NEXT_STEPS_MARKER = "Next Steps:"

DEFAULT_TICKET_TITLE = "AI Assistant Issue"
DEFAULT_NEXT_STEPS = "Please review and add resolution steps."
RESOLUTION_PLACEHOLDER = "To be updated once the issue is resolved."

# Jira caps summaries at 255 characters
SUMMARY_MAX = 255

ADF = "atlas_doc_format"
STORAGE = "storage"


# ----------------- Parsing -----------------
def _field(lines: List[str], marker: str) -> Optional[str]:
    # first match wins
    for line in lines:
        if line.startswith(marker):
            return line[len(marker):].strip()
    return None


def parse(raw_text: Optional[str]) -> TriageText:
    raw = raw_text or ""
    lines = raw.split("\n")

    summary = _field(lines, SUMMARY_MARKER)
    next_steps = _field(lines, NEXT_STEPS_MARKER)
    structured = bool(summary)

    if not structured:
        summary = raw.strip()[:SUMMARY_MAX] or DEFAULT_TICKET_TITLE

    return TriageText(
        summary=summary,
        next_steps=next_steps or DEFAULT_NEXT_STEPS,
        raw_text=raw,
        structured=structured,
    )


def ticket_title(triage: TriageText) -> str:
    return triage.summary if triage.structured else DEFAULT_TICKET_TITLE


def article_title(triage: TriageText, ticket_key: str) -> str:
    return triage.summary if triage.structured else f"KB: {ticket_key}"


def _summary_body(triage: TriageText) -> str:
    # Unstructured text goes into the article whole
    return triage.summary if triage.structured else (triage.raw_text.strip() or triage.summary)


def _footer(ticket: TicketRef, now: Optional[datetime]) -> str:
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y-%m-%d %H:%M UTC")
    return f"Created on: {stamp} | Source: {ticket.key}"


# ----------------- Rendering: Atlassian Document Format -----------------
def _text(text: str, *marks: Dict[str, Any]) -> Dict[str, Any]:
    node: Dict[str, Any] = {"type": "text", "text": text}
    if marks:
        node["marks"] = list(marks)
    return node


def _heading(text: str, level: int) -> Dict[str, Any]:
    return {"type": "heading", "attrs": {"level": level}, "content": [_text(text)]}


def _paragraph(*nodes: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "paragraph", "content": list(nodes)}


def adf_text_document(text: str) -> Dict[str, Any]:
    """Plain text as an ADF doc, one paragraph per line. Blank lines become empty paragraphs."""
    paragraphs = [_paragraph(_text(line)) if line else _paragraph() for line in text.split("\n")]
    return {"type": "doc", "version": 1, "content": paragraphs}


def adf_document(
    title: str, ticket: TicketRef, triage: TriageText, now: Optional[datetime] = None
) -> Dict[str, Any]:
    em = {"type": "em"}
    return {
        "version": 1,
        "type": "doc",
        "content": [
            _heading(f"Knowledge Base: {title}", 1),
            _paragraph(
                _text("Related Jira Ticket: ", {"type": "strong"}),
                _text(ticket.key, {"type": "link", "attrs": {"href": ticket.url}}),
            ),
            _heading("Issue Summary", 2),
            _paragraph(_text(_summary_body(triage))),
            _heading("Recommended Next Steps", 2),
            _paragraph(_text(triage.next_steps)),
            _heading("Resolution Steps", 2),
            _paragraph(_text(RESOLUTION_PLACEHOLDER, em)),
            _paragraph(_text(_footer(ticket, now), em)),
        ],
    }


# ----------------- Rendering: storage (XHTML) format -----------------
def storage_document(
    title: str, ticket: TicketRef, triage: TriageText, now: Optional[datetime] = None
) -> str:
    esc = html.escape
    return "".join([
        f"<h1>Knowledge Base: {esc(title)}</h1>",
        f'<p><strong>Related Jira Ticket: </strong><a href="{esc(ticket.url)}">{esc(ticket.key)}</a></p>',
        "<h2>Issue Summary</h2>",
        f"<p>{esc(_summary_body(triage))}</p>",
        "<h2>Recommended Next Steps</h2>",
        f"<p>{esc(triage.next_steps)}</p>",
        "<h2>Resolution Steps</h2>",
        f"<p><em>{RESOLUTION_PLACEHOLDER}</em></p>",
        f"<p><em>{esc(_footer(ticket, now))}</em></p>",
    ])


def render(
    title: str,
    ticket: TicketRef,
    triage: TriageText,
    fmt: str = ADF,
    now: Optional[datetime] = None,
) -> str:
    """Article body as a string in `fmt`. ADF is JSON-encoded, as the v2 pages API expects."""
    if fmt == ADF:
        return json.dumps(adf_document(title, ticket, triage, now), ensure_ascii=False)
    if fmt == STORAGE:
        return storage_document(title, ticket, triage, now)
    raise ValueError(f"Unknown body format: {fmt}")
