# agent.py
import random
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeout
from typing import Optional, Protocol, Tuple

import openai
from langchain_core.prompts import PromptTemplate
from langchain_openai import ChatOpenAI

from .codec import NEXT_STEPS_MARKER, SUMMARY_MARKER
from .config import Settings
from .errors import ProviderError, ProviderUnavailable, ResponderTimeout
from .logs import log_event
from .schemas import ChatReply

DEFAULT_TIMEOUT_MS = 8000

# abandoned calls still end on their own after this many deadlines
CLIENT_TIMEOUT_FACTOR = 2


# ----------------- Provider -----------------
class Provider(Protocol):
    def generate(self, prompt: str) -> str: ...


class ChatModelProvider:
    """`generate(prompt) -> text` over a LangChain chat model. No conversation state is kept."""

    def __init__(self, llm: ChatOpenAI):
        self._llm = llm

    def generate(self, prompt: str) -> str:
        out = self._llm.invoke(prompt)
        content = out.content
        if isinstance(content, list):
            content = "".join(c if isinstance(c, str) else c.get("text", "") for c in content)
        return content


def build_provider(settings: Settings) -> Optional[ChatModelProvider]:
    """Created once at startup. None when no credential is configured."""
    if not settings.openai_api_key:
        log_event("OPENAI_API_KEY not set; replies use the rule-based generator", "WARNING")
        return None
    llm = ChatOpenAI(
        model=settings.model, temperature=0.2,
        api_key=settings.openai_api_key, base_url=settings.openai_base or None,
        organization=settings.openai_org_id or None,
        max_retries=0, max_tokens=500,
        timeout=settings.ai_timeout_ms * CLIENT_TIMEOUT_FACTOR / 1000.0,
    )
    log_event("AI provider initialised", model=settings.model)
    return ChatModelProvider(llm)


# ----------------- Prompt -----------------
_prompt = PromptTemplate.from_template(
    "You are an AI assistant helping with Jira issue triage.\n"
    'The user has provided the following input: "{input}"\n\n'
    "If the input is a greeting, small talk or a general question, answer briefly and "
    "helpfully in plain prose.\n"
    "If it describes a problem or an issue, summarise it and name the team that should "
    "handle it. Format that response exactly like this, two lines and nothing else:\n"
    f"{SUMMARY_MARKER} [brief summary of the issue]\n"
    f"{NEXT_STEPS_MARKER} This issue will be navigated to [appropriate team] for resolution."
)


def build_prompt(user_text: str) -> str:
    return _prompt.format(input=user_text)


# ----------------- Failure categories -----------------
FAILURE_MESSAGES = {
    "timeout": "Request timed out. The service might be slow. Please try again in a moment.",
    "auth": "Authentication issue. Please check your API configuration.",
    "rate_limit": "Service is busy. Please wait a moment before trying again.",
    "connection": "Connection issue detected. Please try again shortly.",
    "unknown": "I apologize, but I'm having trouble processing your request right now. Please try again.",
}


def classify_error(exc: BaseException) -> str:
    if isinstance(exc, ProviderError):
        return exc.category
    # APITimeoutError subclasses APIConnectionError
    if isinstance(exc, (ResponderTimeout, openai.APITimeoutError)):
        return "timeout"
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return "auth"
    if isinstance(exc, openai.RateLimitError):
        return "rate_limit"
    if isinstance(exc, openai.APIConnectionError):
        return "connection"
    msg = str(exc).lower()
    if "timed out" in msg or "timeout" in msg:
        return "timeout"
    if "401" in msg or "403" in msg:
        return "auth"
    if "429" in msg or "rate limit" in msg:
        return "rate_limit"
    return "unknown"


def describe_failure(exc: BaseException) -> Tuple[str, str]:
    category = classify_error(exc)
    return category, FAILURE_MESSAGES.get(category, FAILURE_MESSAGES["unknown"])


# ----------------- Rule-based fallback -----------------
IT_SUPPORT_ESCALATION = (
    f"{SUMMARY_MARKER} User is experiencing issues with their laptop not functioning properly.\n"
    f"{NEXT_STEPS_MARKER} This issue will be navigated to the IT Support team for resolution."
)

EXACT_REPLIES = {
    "my laptop is not working": IT_SUPPORT_ESCALATION,
}

# First rule whose keyword appears in the lowercased input wins
KEYWORD_REPLIES = (
    (("hello", "hi", "hey"), "Hello there! How can I assist you today?"),
    (("jira", "issue", "project"),
     "I can help you with Jira-related queries. You can ask me about issues, projects, or workflows!"),
    (("help",),
     "I'm here to help! You can ask me about Jira, project management, or anything else you need assistance with."),
    (("thank",), "You're welcome! Is there anything else I can help you with?"),
)

SMALL_TALK = (
    "That's interesting! Tell me more about that.",
    "I understand. How else can I assist you?",
    "Thanks for sharing that with me. Do you have any other questions?",
    "I'm still learning, but I'll do my best to help. Can you rephrase that?",
    "That's a great question! Let me think about how I can help with that.",
)

GENERIC_NEXT_STEPS = (
    "This issue has been categorized and will be navigated to the appropriate team for resolution."
)


def fallback_reply(user_text: str, rng: Optional[random.Random] = None) -> str:
    text = user_text or ""
    low = text.lower()

    if low in EXACT_REPLIES:
        return EXACT_REPLIES[low]
    for keywords, reply in KEYWORD_REPLIES:
        if any(k in low for k in keywords):
            return reply
    # long enough to be an issue description
    if len(low) > 20:
        return f"{SUMMARY_MARKER} {text[:50]}...\n{NEXT_STEPS_MARKER} {GENERIC_NEXT_STEPS}"
    return (rng or random).choice(SMALL_TALK)


# ----------------- Responder -----------------
class AIResponder:
    def __init__(
        self,
        provider: Optional[Provider],
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        rng: Optional[random.Random] = None,
    ):
        self.provider = provider
        self.timeout_ms = timeout_ms
        self._rng = rng or random.Random()

    def respond(self, user_text: str, deadline_ms: Optional[int] = None) -> str:
        """Reply text for `user_text`. Raises ResponderTimeout when the deadline wins the race."""
        return self._reply(user_text, deadline_ms).text

    def reply(self, user_text: str, deadline_ms: Optional[int] = None) -> ChatReply:
        """Like respond() but total: a timeout becomes a degraded reply."""
        try:
            return self._reply(user_text, deadline_ms)
        except ResponderTimeout as exc:
            category, message = describe_failure(exc)
            return ChatReply(text=message, source="timeout", category=category)

    def _reply(self, user_text: str, deadline_ms: Optional[int]) -> ChatReply:
        timeout_ms = deadline_ms if deadline_ms is not None else self.timeout_ms
        try:
            text = self._generate_bounded(build_prompt(user_text), timeout_ms)
            return ChatReply(text=text, source="model")
        except ProviderUnavailable:
            return ChatReply(text=fallback_reply(user_text, self._rng), source="fallback")
        except ProviderError as exc:
            log_event("AI provider failed, using rule-based reply", "WARNING",
                      category=exc.category, error=str(exc))
            return ChatReply(
                text=fallback_reply(user_text, self._rng), source="fallback", category=exc.category
            )

    def _generate_bounded(self, prompt: str, timeout_ms: int) -> str:
        if self.provider is None:
            raise ProviderUnavailable("AI provider is not configured")

        future: Future = Future()

        def _run() -> None:
            try:
                future.set_result(self._call_provider(prompt))
            except Exception as exc:
                future.set_exception(exc)

        # daemon, so an abandoned call never holds up process exit
        threading.Thread(target=_run, name="ai-call", daemon=True).start()
        try:
            return future.result(timeout=timeout_ms / 1000.0)
        except FutureTimeout:
            # the call keeps running in the background; its result is dropped
            log_event("AI request timed out", "WARNING", timeout_ms=timeout_ms)
            raise ResponderTimeout(timeout_ms) from None

    def _call_provider(self, prompt: str) -> str:
        try:
            text = self.provider.generate(prompt)
        except Exception as exc:
            raise ProviderError(str(exc) or exc.__class__.__name__, classify_error(exc)) from exc
        if not isinstance(text, str) or not text.strip():
            raise ProviderError("Empty or malformed response from AI provider")
        return text
