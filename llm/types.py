"""
Provider-agnostic types for Wish Granter's LLM layer.

These types decouple conversation logic from any specific LLM SDK.
Providers convert to/from these types internally.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class StopReason(Enum):
    """Why the LLM stopped generating."""
    END_TURN = "end_turn"
    MAX_TOKENS = "max_tokens"
    STOP_SEQUENCE = "stop_sequence"


@dataclass
class TokenUsage:
    """Token counts for a single LLM call."""
    input_tokens: int = 0
    output_tokens: int = 0

    def __add__(self, other: TokenUsage) -> TokenUsage:
        return TokenUsage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
        )


@dataclass
class LLMResponse:
    """Provider-agnostic response from an LLM call."""
    text: str
    stop_reason: StopReason = StopReason.END_TURN
    usage: TokenUsage = field(default_factory=TokenUsage)
    model: str = ""
    raw_content: Any = None  # Provider-native content blocks

    def __str__(self) -> str:
        return self.text


class BackendError(Exception):
    """The completion backend failed (network, HTTP error, timeout, bad reply)."""


class BackendUnauthorized(BackendError):
    """The backend rejected our credentials (HTTP 401)."""
