"""Conversation history formatting for draft prompts."""

from __future__ import annotations

from zeno.gmail.models import ThreadMessage

DEFAULT_MAX_LENGTH = 4000


def format_thread_for_ai(messages: list[ThreadMessage], max_length: int = DEFAULT_MAX_LENGTH) -> str:
    """Render every message except the latest, oldest first.

    A single-message thread has no history, so the result is empty. Entries
    that would push the block past ``max_length`` are dropped with a marker.
    """
    if len(messages) <= 1:
        return ""

    formatted = "=== PREVIOUS CONVERSATION ===\n\n"
    total_length = len(formatted)

    for msg in messages[:-1]:
        sender = "YOU (sent)" if msg.is_from_user else msg.from_
        entry = f"[{msg.date}] {sender}:\n{msg.body}\n\n---\n\n"
        if total_length + len(entry) > max_length:
            formatted += "[Earlier messages truncated for length]\n\n"
            break
        formatted += entry
        total_length += len(entry)

    formatted += "=== END PREVIOUS CONVERSATION ===\n\n"
    return formatted
