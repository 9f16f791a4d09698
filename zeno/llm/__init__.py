"""LLM gateway — model-agnostic interface backed by LiteLLM."""

from zeno.llm.gateway import LLMGateway

__all__ = ["LLMGateway"]
