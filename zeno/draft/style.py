"""Writing-style analysis — a short profile of how the user writes, built from sent mail.

The profile is saved as the ``writing_style`` setting and switched on, so
later drafts are asked to match it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from zeno.draft.engine import DraftGenerationError
from zeno.draft.prompts import build_style_prompt, build_style_samples
from zeno.llm.gateway import LLMGateway

if TYPE_CHECKING:
    from zeno.gmail.client import UserGmailClient
    from zeno.users.settings import UserSettings

logger = logging.getLogger(__name__)

SENT_QUERY = "in:sent"
SENT_FETCH_LIMIT = 20


class StyleAnalysisError(Exception):
    """There is not enough sent mail to describe a writing style."""


@dataclass(frozen=True)
class StyleProfile:
    style: str
    emails_analyzed: int


class WritingStyleAnalyzer:
    def __init__(self, llm_gateway: LLMGateway):
        self.llm = llm_gateway

    def analyze(self, client: UserGmailClient, settings: UserSettings) -> StyleProfile:
        """Read recent sent mail, ask the model for a profile, and save it.

        Raises:
            StyleAnalysisError: no sent mail, or none long enough to sample.
            DraftGenerationError: the model reply was not text.
        """
        sent = client.get_emails(SENT_FETCH_LIMIT, SENT_QUERY)
        if not sent:
            raise StyleAnalysisError("No sent emails found to analyze")

        samples = build_style_samples([(e.subject, e.body) for e in sent])
        if not samples:
            raise StyleAnalysisError("Not enough email content to analyze")

        text = self.llm.analyze_style(build_style_prompt(samples), user_email=client.user_email)
        if text is None:
            raise DraftGenerationError("Unexpected response from AI")

        style = text.strip()
        settings.update({"writing_style": style, "use_writing_style": True})
        logger.info("Saved writing style for %s from %d emails", client.user_email, len(samples))
        return StyleProfile(style=style, emails_analyzed=len(samples))
