"""
Context Assembler
=================
Pure rendering of the prompt sent to the model on every turn:

    preamble -> conversation context -> file summaries -> new message

Nothing here is cached; the conversation may have changed since the last
render.
"""

from datetime import datetime
from typing import Optional, Sequence

from assistant_sidecar.agent.structs import ConversationState, Turn
from assistant_sidecar.config.settings import DEFAULT_SYSTEM_PROMPT
from assistant_sidecar.utils.credential_store import AccountIdentity

DEFAULT_MAX_RECENT = 6
FILE_SEPARATOR = "\n\n---\n\n"

CONTEXT_RULES = (
    "Context rules: Recent Messages take precedence over any earlier summary "
    "when they conflict. Always answer the latest user message first. Resolve "
    'references such as "that", "it" or "continue" against Recent Messages before '
    "the summary."
)


def split_window(turns: Sequence[Turn], max_recent: int):
    """Returns ``(older, recent)`` where ``recent`` is the last ``max_recent`` turns."""
    if max_recent <= 0:
        return list(turns), []
    cut = max(len(turns) - max_recent, 0)
    return list(turns[:cut]), list(turns[cut:])


def format_turns(turns: Sequence[Turn]) -> str:
    return "\n".join(turn.render() for turn in turns)


def render_context(state: ConversationState, max_recent: int = DEFAULT_MAX_RECENT) -> str:
    """Renders the summary block and the recent-messages block, or ``""``."""
    if not state.turns and not state.summary:
        return ""

    older, recent = split_window(state.turns, max_recent)
    blocks = []

    if state.summary:
        blocks.append(
            f"Conversation Summary (compressed from {len(older)} earlier messages):\n"
            f"{state.summary}"
        )
    if recent:
        blocks.append(f"Recent Messages:\n{format_turns(recent)}")

    blocks.append(CONTEXT_RULES)
    return "\n\n".join(blocks)


def build_preamble(
    system_prompt: Optional[str],
    identity: AccountIdentity,
    now: Optional[datetime] = None,
) -> str:
    """Date/time, account identity and granted scopes, then the system prompt."""
    now = (now or datetime.now()).astimezone()
    timezone_name = now.tzname() or "UTC"
    hour = now.hour % 12 or 12
    meridiem = "AM" if now.hour < 12 else "PM"

    lines = [
        "CURRENT DATE & TIME CONTEXT:",
        f"- Current Date: {now.strftime('%A, %B')} {now.day}, {now.year}",
        f"- Current Time: {hour}:{now.strftime('%M:%S')} {meridiem} {timezone_name}",
        f"- Timezone: {timezone_name}",
        f"- ISO Timestamp: {now.isoformat()}",
        f"- User Google Email: {identity.email}",
        f"- Enabled Google Scopes ({len(identity.scopes)}): {', '.join(identity.scopes)}",
        "",
        "IMPORTANT: When working with calendar events, scheduling, or time-sensitive "
        "tasks, always consider this current date/time context. The user's computer "
        f"timezone is {timezone_name}, but calendar events may be in different timezones.",
        "",
        system_prompt or DEFAULT_SYSTEM_PROMPT,
    ]
    return "\n".join(lines).strip()


def render_file_context(file_summaries: Sequence[str]) -> str:
    summaries = [s for s in file_summaries or [] if s]
    if not summaries:
        return ""
    return "File Context:\n\n" + FILE_SEPARATOR.join(summaries)


def build_prompt(
    preamble: str,
    context: str,
    file_summaries: Sequence[str],
    message: str,
) -> str:
    sections = [preamble, context, render_file_context(file_summaries)]
    head = "\n\n".join(section for section in sections if section)
    if not head:
        return message
    return f"{head}\n\n{message}"
