"""
Provider registry: resolves the configured completion backend.

Usage:
    from llm.providers import get_llm_provider

    provider = get_llm_provider()
    response = await provider.complete(messages, system=prompt, source="conversation")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from llm.providers.base import LLMProvider

logger = logging.getLogger("wish_granter.providers")

# Cached provider instance
_llm_provider: LLMProvider | None = None


def get_llm_provider() -> LLMProvider:
    """Get or create the configured LLM provider (singleton)."""
    global _llm_provider
    if _llm_provider is None:
        from config import settings
        from llm.providers.claude_provider import ClaudeLLMProvider

        _llm_provider = ClaudeLLMProvider(
            settings.anthropic_api_key,
            model=settings.claude_model,
            timeout=settings.backend_timeout,
        )
        logger.info(f"LLM provider: claude ({settings.claude_model})")

    return _llm_provider


def reset_providers():
    """Reset cached providers (for testing)."""
    global _llm_provider
    _llm_provider = None
