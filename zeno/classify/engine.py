"""Classification engine — tiered LLM classification with thread and sender context."""

from __future__ import annotations

import logging
from typing import Any

from zeno.categories import CategorySet
from zeno.classify.parser import (
    ClassificationResult,
    apply_safety_override,
    parse_simple_response,
    parse_structured_response,
)
from zeno.classify.prompts import build_simple_prompt, build_tiered_prompt
from zeno.classify.threads import ThreadSignals, detect_thread_signals
from zeno.config import AppConfig
from zeno.context.sender import SenderContext
from zeno.gmail.models import Email
from zeno.llm.gateway import LLMGateway

logger = logging.getLogger(__name__)

SIMPLE_CONFIDENCE = 0.7
SIMPLE_REASONING = "Simple classification (enhanced disabled or data missing)"


def _thread_signals(email: Email) -> ThreadSignals:
    return detect_thread_signals(
        email.subject, _body(email), email.references, email.in_reply_to
    )


def _body(email: Email) -> str:
    return email.body or email.body_preview or ""


class ClassificationEngine:
    """Classifies emails into the user's numbered categories via the LLM gateway."""

    def __init__(self, llm_gateway: LLMGateway, config: AppConfig):
        self.llm = llm_gateway
        self.config = config

    def classify_simple(self, email: Email, categories: CategorySet, **llm_kwargs: Any) -> int:
        """Single-shot classification: the model answers with a bare number."""
        prompt = build_simple_prompt(email.from_, email.subject, _body(email), categories)
        text = self.llm.classify(
            prompt,
            max_tokens=self.config.llm.max_simple_classify_tokens,
            call_type="classify_simple",
            **llm_kwargs,
        )
        return parse_simple_response(text, categories)

    def classify_with_context(
        self,
        email: Email,
        sender_context: SenderContext,
        categories: CategorySet,
        **llm_kwargs: Any,
    ) -> ClassificationResult:
        """Tiered classification.

        Thread detection runs first and feeds both the prompt and the
        post-parse override, so a detected reply thread can never come
        back as Marketing/Spam whatever the model says.
        """
        thread_signals = _thread_signals(email)
        prompt = build_tiered_prompt(
            email.from_,
            email.subject,
            _body(email),
            sender_context,
            thread_signals,
            categories,
        )
        text = self.llm.classify(
            prompt, max_tokens=self.config.llm.max_classify_tokens, **llm_kwargs
        )
        outcome = parse_structured_response(text, categories)
        return apply_safety_override(outcome, thread_signals, sender_context)

    def classify(
        self,
        email: Email,
        sender_context: SenderContext | None,
        categories: CategorySet,
        **llm_kwargs: Any,
    ) -> ClassificationResult:
        """Enhanced path when enabled and the sender is known; single-shot otherwise."""
        if self.config.classification.enhanced and email.from_email and sender_context:
            return self.classify_with_context(email, sender_context, categories, **llm_kwargs)

        category = self.classify_simple(email, categories, **llm_kwargs)
        return ClassificationResult(
            category=category,
            confidence=SIMPLE_CONFIDENCE,
            reasoning=SIMPLE_REASONING,
            is_thread=_thread_signals(email).is_thread,
            sender_known=False,
        )
