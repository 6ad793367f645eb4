"""
Provider protocol for Wish Granter's LLM layer.

Any completion backend must implement LLMProvider.
"""

from __future__ import annotations

from typing import Protocol

from llm.types import LLMResponse


class LLMProvider(Protocol):
    """
    Protocol for LLM providers.

    Messages are plain {"role", "content"} dicts with roles "user" and
    "assistant". Implementations raise BackendUnauthorized when credentials
    are rejected and BackendError for every other failure.
    """

    async def complete(
        self,
        messages: list[dict],
        *,
        system: str | None = None,
        max_tokens: int = 1024,
        model: str | None = None,
        source: str = "",
    ) -> LLMResponse:
        """Async, non-streaming completion."""
        ...
