# tickets.py
from . import codec
from .atlassian import TrackerClient
from .config import Settings
from .errors import TrackerError
from .logs import log_event
from .schemas import TicketRef


class TicketService:
    """Turns triage text into a Jira issue.

    Not idempotent: every call opens a new issue. Creation is user-gated and
    never retried here.
    """

    def __init__(self, tracker: TrackerClient, settings: Settings):
        self.tracker = tracker
        self.base_url = settings.base_url
        # deployment-wide classification; callers cannot override it
        self.issue_type = settings.issue_type
        self.priority = settings.priority

    def ticket_url(self, key: str) -> str:
        return f"{self.base_url}/browse/{key}"

    def create_ticket(self, issue_data: str, project_key: str) -> TicketRef:
        triage = codec.parse(issue_data)
        title = codec.ticket_title(triage)
        # the whole text goes into the body so nothing is lost when title extraction degrades
        body = codec.adf_text_document(issue_data or title)

        created = self.tracker.create_issue(project_key, title, body, self.issue_type, self.priority)
        key = created.get("key") if isinstance(created, dict) else None
        if not key:
            raise TrackerError("Tracker response did not include an issue key")

        ticket = TicketRef(key=key, id=str(created.get("id") or ""), url=self.ticket_url(key))
        log_event("ticket created", ticket_key=ticket.key, project=project_key, structured=triage.structured)
        return ticket
