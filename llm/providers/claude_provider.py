"""
Anthropic Claude provider wrapping the Anthropic SDK.

Handles:
- Response parsing (Anthropic Message → LLMResponse)
- Error mapping (AuthenticationError → BackendUnauthorized, other SDK
  errors → BackendError)
- System prompt pass-through
"""

from __future__ import annotations

import logging
from typing import Any

import anthropic

from llm.types import (
    BackendError,
    BackendUnauthorized,
    LLMResponse,
    StopReason,
    TokenUsage,
)

logger = logging.getLogger("wish_granter.providers.claude")

# Map Anthropic stop reasons to our enum
_STOP_REASON_MAP = {
    "end_turn": StopReason.END_TURN,
    "max_tokens": StopReason.MAX_TOKENS,
    "stop_sequence": StopReason.STOP_SEQUENCE,
}


def _parse_usage(usage: Any) -> TokenUsage:
    """Extract token counts from an Anthropic usage object."""
    return TokenUsage(
        input_tokens=getattr(usage, "input_tokens", 0) or 0,
        output_tokens=getattr(usage, "output_tokens", 0) or 0,
    )


def _parse_response(response: Any) -> LLMResponse:
    """Convert an Anthropic Message to an LLMResponse."""
    text_parts = [
        block.text
        for block in response.content
        if getattr(block, "type", None) == "text"
    ]
    if not text_parts:
        raise BackendError("Backend reply contained no text content")

    return LLMResponse(
        text="".join(text_parts),
        stop_reason=_STOP_REASON_MAP.get(response.stop_reason, StopReason.END_TURN),
        usage=_parse_usage(response.usage),
        model=getattr(response, "model", "") or "",
        raw_content=response.content,
    )


class ClaudeLLMProvider:
    """Anthropic Claude provider."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        model: str | None = None,
        timeout: float | None = None,
    ):
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._async_client = None

    def _get_async_client(self):
        """Lazy-init the async Anthropic client. Retries are disabled."""
        if self._async_client is None:
            from config import settings
            self._async_client = anthropic.AsyncAnthropic(
                api_key=self._api_key or settings.anthropic_api_key,
                timeout=self._timeout or settings.backend_timeout,
                max_retries=0,
            )
        return self._async_client

    def _resolve_model(self, model: str | None) -> str:
        """Resolve model string, falling back to config default."""
        if model:
            return model
        if self._model:
            return self._model
        from config import settings
        return settings.claude_model

    async def complete(
        self,
        messages: list[dict],
        *,
        system: str | None = None,
        max_tokens: int = 1024,
        model: str | None = None,
        source: str = "",
    ) -> LLMResponse:
        """Async completion via Anthropic SDK."""
        client = self._get_async_client()
        model = self._resolve_model(model)

        kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "messages": messages,
        }
        if system:
            kwargs["system"] = system

        try:
            response = await client.messages.create(**kwargs)
        except anthropic.AuthenticationError as e:
            raise BackendUnauthorized(f"API request failed with status 401: {e}") from e
        except anthropic.APIStatusError as e:
            raise BackendError(f"API request failed with status {e.status_code}: {e}") from e
        except anthropic.APIError as e:
            raise BackendError(f"API request failed: {e}") from e

        result = _parse_response(response)

        logger.debug(
            f"complete [{source}] model={model} "
            f"in={result.usage.input_tokens} out={result.usage.output_tokens} "
            f"stop={result.stop_reason.value}"
        )

        return result
