"""LLM Gateway — model-agnostic interface backed by LiteLLM."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

import litellm

from zeno.config import LLMSettings

if TYPE_CHECKING:
    from zeno.db.models import LLMCallRepository

logger = logging.getLogger(__name__)


def response_text(response: Any) -> str | None:
    """Text of the first choice, or None when the model sent something else."""
    try:
        content = response.choices[0].message.content
    except (AttributeError, IndexError, TypeError):
        return None
    return content if isinstance(content, str) else None


def _usage(response: Any) -> tuple[int, int, int]:
    usage = getattr(response, "usage", None)
    if not usage:
        return 0, 0, 0
    return (
        getattr(usage, "prompt_tokens", 0) or 0,
        getattr(usage, "completion_tokens", 0) or 0,
        getattr(usage, "total_tokens", 0) or 0,
    )


class LLMGateway:
    """Single-turn completions against a hosted chat model.

    Every call, failed or not, is written to ``llm_calls`` when a call
    repository is attached. Transport errors are re-raised after logging.
    """

    def __init__(self, config: LLMSettings, call_repo: LLMCallRepository | None = None):
        self.config = config
        self.call_repo = call_repo
        litellm.suppress_debug_info = True

    def classify(self, prompt: str, max_tokens: int | None = None, **kwargs: Any) -> str | None:
        """Call the classification model at temperature 0.

        Args:
            prompt: Full classification prompt
            max_tokens: Output cap (tiered prompts need room for reasoning)
            **kwargs: Optional user_email and gmail_id for logging
        """
        return self._complete(
            call_type=kwargs.pop("call_type", "classify"),
            model=self.config.classify_model,
            prompt=prompt,
            max_tokens=max_tokens or self.config.max_classify_tokens,
            temperature=0.0,
            **kwargs,
        )

    def draft(self, prompt: str, max_tokens: int, temperature: float, **kwargs: Any) -> str | None:
        """Call the draft model with the style bucket's temperature and length."""
        return self._complete(
            call_type="draft",
            model=self.config.draft_model,
            prompt=prompt,
            max_tokens=max_tokens,
            temperature=temperature,
            **kwargs,
        )

    def analyze_style(self, prompt: str, **kwargs: Any) -> str | None:
        """Summarise a user's writing style from their sent mail."""
        return self._complete(
            call_type="analyze_style",
            model=self.config.draft_model,
            prompt=prompt,
            max_tokens=self.config.max_style_tokens,
            temperature=0.0,
            **kwargs,
        )

    def _complete(
        self,
        call_type: str,
        model: str,
        prompt: str,
        max_tokens: int,
        temperature: float,
        **kwargs: Any,
    ) -> str | None:
        user_email = kwargs.get("user_email")
        gmail_id = kwargs.get("gmail_id")
        start_time = time.monotonic()

        try:
            response = litellm.completion(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except Exception as e:
            logger.error("LLM %s call failed: %s", call_type, e)
            if self.call_repo:
                self.call_repo.log(
                    call_type=call_type,
                    model=model,
                    user_email=user_email,
                    gmail_id=gmail_id,
                    prompt=prompt,
                    latency_ms=int((time.monotonic() - start_time) * 1000),
                    error=str(e),
                )
            raise

        latency_ms = int((time.monotonic() - start_time) * 1000)
        text = response_text(response)
        if text is None:
            logger.warning("LLM %s call returned non-text content", call_type)

        if self.call_repo:
            prompt_tokens, completion_tokens, total_tokens = _usage(response)
            self.call_repo.log(
                call_type=call_type,
                model=model,
                user_email=user_email,
                gmail_id=gmail_id,
                prompt=prompt,
                response_text=text,
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=total_tokens,
                latency_ms=latency_ms,
                error=None if text is not None else "non-text response",
            )

        return text

    def health_check(self) -> dict[str, bool]:
        """Check if LLM models are reachable."""
        results = {}
        for name, model in [
            ("classify", self.config.classify_model),
            ("draft", self.config.draft_model),
        ]:
            try:
                litellm.completion(
                    model=model,
                    messages=[{"role": "user", "content": "ping"}],
                    max_tokens=5,
                )
                results[name] = True
            except Exception:
                results[name] = False
        return results
