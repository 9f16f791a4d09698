"""Draft engine — generates email reply drafts via LLM gateway."""

from __future__ import annotations

import logging
from typing import Any

from zeno.draft.prompts import STYLE_CONFIGS, build_draft_prompt, style_from_temperature
from zeno.llm.gateway import LLMGateway

logger = logging.getLogger(__name__)


class DraftGenerationError(Exception):
    """The draft model did not return usable text."""


class DraftEngine:
    """Generates email drafts using LLM gateway."""

    def __init__(self, llm_gateway: LLMGateway):
        self.llm = llm_gateway

    def generate_draft_response(
        self,
        from_: str,
        subject: str,
        body: str,
        temperature: float = 0.5,
        signature: str = "",
        writing_style: str = "",
        thread_context: str = "",
        **llm_kwargs: Any,
    ) -> str:
        """Write a reply body; the signature, if any, goes after a blank line.

        Raises:
            DraftGenerationError: the model reply was not text.
        """
        style = style_from_temperature(temperature)
        style_config = STYLE_CONFIGS[style]
        prompt = build_draft_prompt(
            from_, subject, body, style_config, writing_style, thread_context
        )

        text = self.llm.draft(
            prompt,
            max_tokens=style_config.max_tokens,
            temperature=style_config.temperature,
            **llm_kwargs,
        )
        if text is None:
            raise DraftGenerationError("Unexpected response type")

        draft = text.strip()
        if signature:
            draft += f"\n\n{signature}"
        logger.debug("Generated %s draft (%d chars)", style.value, len(draft))
        return draft
