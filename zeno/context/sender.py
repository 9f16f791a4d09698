"""Sender context — what we already know about whoever sent this email.

History comes from the user's own processed ``emails`` rows. A sender seen
at least twice counts as a known contact, which keeps their mail out of
Marketing/Spam unless it is clearly promotional.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone

from zeno.categories import CategorySet
from zeno.db.models import EmailRepository

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50
KNOWN_CONTACT_MIN_EMAILS = 2


@dataclass
class SenderContext:
    has_history: bool = False
    email_count: int = 0
    previous_categories: list[int] = field(default_factory=list)
    most_common_category: int | None = None
    is_known_contact: bool = False
    last_interaction: datetime | None = None
    days_since_last_contact: int | None = None

    @classmethod
    def empty(cls) -> SenderContext:
        return cls()


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def build_sender_context(
    rows: list[dict], now: datetime | None = None
) -> SenderContext:
    """Summarise history rows (newest first) into a SenderContext."""
    if not rows:
        return SenderContext.empty()

    categories = [row["category"] for row in rows]
    # Counter keeps first-seen order on ties, and rows are newest first
    most_common = Counter(categories).most_common(1)[0][0]

    last_interaction = _parse_timestamp(rows[0]["processed_at"])
    now = now or datetime.now(timezone.utc)
    days_since = int((now - last_interaction).total_seconds() // 86400)

    return SenderContext(
        has_history=True,
        email_count=len(rows),
        previous_categories=list(dict.fromkeys(categories)),
        most_common_category=most_common,
        is_known_contact=len(rows) >= KNOWN_CONTACT_MIN_EMAILS,
        last_interaction=last_interaction,
        days_since_last_contact=days_since,
    )


class SenderContextLookup:
    """Reads sender history for one user out of the processed-email store."""

    def __init__(self, email_repo: EmailRepository):
        self.email_repo = email_repo

    def get(self, user_email: str, sender_email: str) -> SenderContext:
        """Look up history for a sender. Never raises; errors give an empty context."""
        normalized = (sender_email or "").lower().strip()
        if not normalized:
            return SenderContext.empty()
        try:
            rows = self.email_repo.sender_history(user_email, normalized, limit=HISTORY_LIMIT)
            return build_sender_context(rows)
        except Exception as e:
            logger.warning("Sender context lookup failed for %s: %s", normalized, e)
            return SenderContext.empty()


def format_sender_context_for_prompt(
    context: SenderContext, categories: CategorySet | None = None
) -> str:
    """Render the SENDER CONTEXT block of the classification prompt."""
    if not context.has_history:
        return (
            "SENDER CONTEXT:\n"
            "- First email from this sender (no history)\n"
            "- Treat with appropriate caution for cold outreach"
        )

    def name(category_id: int) -> str:
        if categories is None:
            return f"Category {category_id}"
        return categories.name_of(category_id)

    previous = ", ".join(name(c) for c in context.previous_categories)
    most_common = (
        name(context.most_common_category) if context.most_common_category else "N/A"
    )

    return "\n".join(
        [
            "SENDER CONTEXT:",
            f"- {context.email_count} previous email(s) from this sender",
            f"- Previous categories: {previous}",
            f"- Most common category: {most_common}",
            f"- Days since last contact: {context.days_since_last_contact}",
            f"- Known contact: {'Yes' if context.is_known_contact else 'No'}",
            "- IMPORTANT: This is a known sender - do NOT classify as Marketing/Spam "
            "unless clearly promotional AND unsolicited",
        ]
    )
