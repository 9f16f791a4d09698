"""Thread detection — structural cues that an email belongs to a conversation.

Thread context is checked before any content heuristic: a reply or forward
must never end up in Marketing/Spam just because it quotes promotional text.
Everything here is pure string inspection, no I/O.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum


@dataclass(frozen=True)
class ThreadSignals:
    is_thread: bool = False
    signals: list[str] = field(default_factory=list)
    confidence: float = 0.0


class ThreadState(str, Enum):
    AWAITING_YOUR_REPLY = "awaiting_your_reply"
    THEY_ANSWERED = "they_answered"
    THEY_WILL_FOLLOW_UP = "they_will_follow_up"
    JUST_THANKS = "just_thanks"
    CALENDAR_DISCUSSION = "calendar_discussion"
    VENDOR_FOLLOWUP = "vendor_followup"
    UNKNOWN = "unknown"


SUBJECT_PREFIX_RE = re.compile(r"^(Re|RE|Fwd|FW|Fw):\s*", re.IGNORECASE)
_QUOTED_LINE_RE = re.compile(r"^>", re.MULTILINE)
# Attribution must open its own line; a quoted "> On ... wrote:" counts as quoted content only
_WROTE_RE = re.compile(r"^[ \t]*On .{10,60} wrote:", re.IGNORECASE | re.MULTILINE)
_FORWARDED_BANNER_RE = re.compile(
    r"^-{5,}\s*Forwarded message\s*-{5,}", re.IGNORECASE | re.MULTILINE
)
_FORWARDED_FROM_RE = re.compile(r"^From:\s+[^\n]+\n(Sent|Date):", re.IGNORECASE | re.MULTILINE)

# Headers are strongest, subject prefix strong, body cues moderate
SIGNAL_WEIGHTS = {
    "references_header": 0.35,
    "in_reply_to_header": 0.35,
    "subject_prefix": 0.25,
    "quoted_content": 0.15,
    "wrote_attribution": 0.10,
    "forwarded_attribution": 0.15,
    "forwarded_from_block": 0.15,
}

MIN_QUOTED_LINES = 2


def detect_thread_signals(
    subject: str,
    body: str,
    references: str | None = None,
    in_reply_to: str | None = None,
) -> ThreadSignals:
    """Inspect subject, body and RFC 822 headers for reply/forward evidence."""
    subject = subject or ""
    body = body or ""
    signals: list[str] = []

    if SUBJECT_PREFIX_RE.match(subject):
        signals.append("subject_prefix")

    if references and references.strip():
        signals.append("references_header")
    if in_reply_to and in_reply_to.strip():
        signals.append("in_reply_to_header")

    if len(_QUOTED_LINE_RE.findall(body)) >= MIN_QUOTED_LINES:
        signals.append("quoted_content")

    if _WROTE_RE.search(body):
        signals.append("wrote_attribution")

    if _FORWARDED_BANNER_RE.search(body):
        signals.append("forwarded_attribution")

    if _FORWARDED_FROM_RE.search(body):
        signals.append("forwarded_from_block")

    confidence = min(sum(SIGNAL_WEIGHTS[s] for s in signals), 1.0)

    return ThreadSignals(
        is_thread=bool(signals),
        signals=signals,
        confidence=round(confidence, 2),
    )


_CALENDAR_SUBJECT_WORDS = ("meeting", "calendar", "invite")
_CALENDAR_BODY_PHRASES = ("calendar invite", "meeting request")
_CALENDAR_BODY_RE = re.compile(r"\b(join|attend|rsvp)\b", re.IGNORECASE)

_THANKS_PATTERNS = [
    re.compile(r"^thanks[.!]?\s*$", re.IGNORECASE | re.MULTILINE),
    re.compile(r"^thank you[.!]?\s*$", re.IGNORECASE | re.MULTILINE),
    re.compile(r"^perfect[.!]?\s*$", re.IGNORECASE | re.MULTILINE),
    re.compile(r"^great[.!]?\s*$", re.IGNORECASE | re.MULTILINE),
    re.compile(r"^sounds good[.!]?\s*$", re.IGNORECASE | re.MULTILINE),
    re.compile(r"^got it[.!]?\s*$", re.IGNORECASE | re.MULTILINE),
]
_MAX_THANKS_LINE = 50

_FOLLOW_UP_PATTERNS = [
    re.compile(r"i('ll| will) (get back|follow up|send|check|look into)", re.IGNORECASE),
    re.compile(r"let me (check|look|get back)", re.IGNORECASE),
]

_QUESTION_RE = re.compile(
    r"\b(can you|could you|would you|do you|are you|will you|please)\b", re.IGNORECASE
)
_ANSWERED_RE = re.compile(
    r"\b(here('s| is)|attached|see below|as requested|per your request)\b", re.IGNORECASE
)


def analyze_thread_state(body: str, subject: str) -> ThreadState:
    """Guess where a conversation stands from the latest message. First match wins."""
    body = body or ""
    lower_body = body.lower()
    lower_subject = (subject or "").lower()

    if (
        any(word in lower_subject for word in _CALENDAR_SUBJECT_WORDS)
        or any(phrase in lower_body for phrase in _CALENDAR_BODY_PHRASES)
        or _CALENDAR_BODY_RE.search(lower_body)
    ):
        return ThreadState.CALENDAR_DISCUSSION

    first_line = body.strip().split("\n")[0]
    if len(first_line) < _MAX_THANKS_LINE and any(p.search(first_line) for p in _THANKS_PATTERNS):
        return ThreadState.JUST_THANKS

    if any(p.search(lower_body) for p in _FOLLOW_UP_PATTERNS):
        return ThreadState.THEY_WILL_FOLLOW_UP

    if "?" in lower_body or _QUESTION_RE.search(body):
        return ThreadState.AWAITING_YOUR_REPLY

    if _ANSWERED_RE.search(body):
        return ThreadState.THEY_ANSWERED

    return ThreadState.UNKNOWN
