"""Classification response parsing and the reply-thread safety override.

Model output is untrusted free text. Every field has a default, so parsing
never fails; a non-text reply becomes a ``Fallback``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Union

from zeno.categories import DEFAULT_CATEGORY_ID, MARKETING_CATEGORY_ID, CategorySet
from zeno.classify.threads import ThreadSignals
from zeno.context.sender import SenderContext

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.5
DEFAULT_REASONING = "Unable to parse reasoning"
NON_TEXT_REASONING = "Parse error - non-text response"
OVERRIDE_CONFIDENCE = 0.6

_CATEGORY_RE = re.compile(r"CATEGORY:\s*(\d+)", re.IGNORECASE)
_CONFIDENCE_RE = re.compile(r"CONFIDENCE:\s*([\d.]+)", re.IGNORECASE)
_REASONING_RE = re.compile(r"REASONING:\s*(.+?)(?:\n|$)", re.IGNORECASE)
_LEADING_INT_RE = re.compile(r"^[+-]?\d+")


@dataclass(frozen=True)
class ClassificationResult:
    category: int
    confidence: float
    reasoning: str
    is_thread: bool = False
    sender_known: bool = False


@dataclass(frozen=True)
class Parsed:
    """Fields read from a text reply, already defaulted and snapped."""

    category: int
    confidence: float
    reasoning: str


@dataclass(frozen=True)
class Fallback:
    """Fixed safe result for a reply that carried no text."""

    category: int = DEFAULT_CATEGORY_ID
    confidence: float = DEFAULT_CONFIDENCE
    reasoning: str = NON_TEXT_REASONING


ParseOutcome = Union[Parsed, Fallback]


def _parse_confidence(raw: str) -> float:
    # "0.8." or "1..0" come back from models now and then
    match = re.match(r"\d*\.?\d*", raw)
    try:
        return float(match.group(0)) if match else DEFAULT_CONFIDENCE
    except ValueError:
        return DEFAULT_CONFIDENCE


def parse_structured_response(text: str | None, categories: CategorySet) -> ParseOutcome:
    """Extract CATEGORY / CONFIDENCE / REASONING from a tiered reply."""
    if text is None:
        return Fallback()

    category_match = _CATEGORY_RE.search(text)
    confidence_match = _CONFIDENCE_RE.search(text)
    reasoning_match = _REASONING_RE.search(text)

    if category_match:
        category = int(category_match.group(1))
    else:
        logger.debug("No CATEGORY in model reply, using %d", DEFAULT_CATEGORY_ID)
        category = DEFAULT_CATEGORY_ID

    confidence = (
        _parse_confidence(confidence_match.group(1)) if confidence_match else DEFAULT_CONFIDENCE
    )
    reasoning = reasoning_match.group(1).strip() if reasoning_match else DEFAULT_REASONING

    return Parsed(
        category=categories.resolve(category),
        confidence=min(max(confidence, 0.0), 1.0),
        reasoning=reasoning,
    )


def parse_simple_response(text: str | None, categories: CategorySet) -> int:
    """Read a bare category number; anything unusable falls back to 2 (or 1)."""
    if text is None:
        return DEFAULT_CATEGORY_ID
    match = _LEADING_INT_RE.match(text.strip())
    if match:
        number = int(match.group(0))
        if categories.is_valid(number):
            return number
    return DEFAULT_CATEGORY_ID if len(categories) >= 2 else 1


def apply_safety_override(
    outcome: ParseOutcome,
    thread_signals: ThreadSignals,
    sender_context: SenderContext,
) -> ClassificationResult:
    """Turn a parse outcome into a result; a reply thread never lands in Marketing/Spam."""
    if (
        isinstance(outcome, Parsed)
        and thread_signals.is_thread
        and outcome.category == MARKETING_CATEGORY_ID
    ):
        override = DEFAULT_CATEGORY_ID
        most_common = sender_context.most_common_category
        if most_common and most_common != MARKETING_CATEGORY_ID:
            override = most_common
        logger.info("Reply thread classified as marketing, overriding to %d", override)
        return ClassificationResult(
            category=override,
            confidence=OVERRIDE_CONFIDENCE,
            reasoning=(
                f"Reply thread incorrectly flagged as marketing - overridden to category {override}"
            ),
            is_thread=True,
            sender_known=sender_context.has_history,
        )

    return ClassificationResult(
        category=outcome.category,
        confidence=outcome.confidence,
        reasoning=outcome.reasoning,
        is_thread=thread_signals.is_thread,
        sender_known=sender_context.has_history,
    )
