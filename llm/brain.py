"""
Brain for Wish Granter: one conversation turn, end to end.

ConversationOrchestrator.converse() runs the full cycle for a participant:

1. load prior history (unless a one-shot exchange was requested)
2. append the participant's message
3. send history + system instruction to the backend
4. react to a superwish marker (bilingual channel invitation)
5. strip marker blocks from the text the participant will see
6. persist history with the assistant reply *unstripped*, so the backend
   keeps seeing its own markers on later turns
7. return the visible text

A "Thinking..." placeholder is shown while the backend works and removed on
every exit path. The whole turn runs under the participant's session lock,
so two back-to-back messages from one participant never interleave their
load/save cycles. converse() never raises: every failure maps to a reply.
"""

import asyncio
import logging
import time
from typing import Any, Optional

from channels.base import Transport
from channels.messages import (
    BACKEND_FAILURE_TEXT,
    BACKEND_UNAUTHORIZED_TEXT,
    THINKING_TEXT,
    superwish_invitation_en,
    superwish_invitation_ru,
)
from llm import markers
from llm.persona import build_system_prompt
from llm.providers.base import LLMProvider
from llm.types import BackendError, BackendUnauthorized
from security.audit import audit
from session.store import Message, SessionStore

logger = logging.getLogger("wish_granter.brain")

DEFAULT_TIMEOUT = 60.0
DEFAULT_MAX_TOKENS = 1000
INVITATION_PARSE_MODE = "Markdown"


def format_for_backend(history: list[Message]) -> list[dict]:
    """Role/content pairs in conversation order, as the backend expects."""
    return [{"role": m.role, "content": m.content} for m in history]


class ConversationOrchestrator:
    """Composes SessionStore, the LLM backend and the transport into one turn."""

    def __init__(
        self,
        store: SessionStore,
        backend: LLMProvider,
        transport: Transport,
        *,
        superwish: str = "",
        invite_link: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        model: Optional[str] = None,
    ):
        self._store = store
        self._backend = backend
        self._transport = transport
        self._invite_link = invite_link
        self._timeout = timeout
        self._max_tokens = max_tokens
        self._model = model
        self.system_prompt = build_system_prompt(superwish)

    async def converse(self, identity: str, text: str, include_history: bool = True) -> str:
        """
        Run one conversation turn and return the text to show the participant.

        Args:
            identity: Participant identity (Telegram user id as a string)
            text: The participant's message
            include_history: If False, the backend sees only this message

        Returns:
            The sanitized reply; may be "" if the reply was nothing but markers.
            On failure, a fixed diagnostic or apology text.
        """
        identity = str(identity)
        audit.message_received(identity=identity)
        start = time.time()

        thinking = None
        try:
            async with self._store.session(identity):
                history = await self._store.load(identity) if include_history else []
                history.append(Message.participant(text))

                await self._typing(identity)
                thinking = await self._show_thinking(identity)

                try:
                    response = await asyncio.wait_for(
                        self._backend.complete(
                            format_for_backend(history),
                            system=self.system_prompt,
                            max_tokens=self._max_tokens,
                            model=self._model,
                            source="conversation",
                        ),
                        timeout=self._timeout,
                    )
                except BackendUnauthorized as e:
                    logger.error(f"API call to Anthropic failed for user {identity}: {e}")
                    return BACKEND_UNAUTHORIZED_TEXT
                except (BackendError, asyncio.TimeoutError) as e:
                    logger.error(f"API call to Anthropic failed for user {identity}: {e!r}")
                    return BACKEND_FAILURE_TEXT

                raw_reply = response.text
                await self._handle_markers(identity, raw_reply)
                visible = markers.strip(raw_reply)

                history.append(Message.assistant(raw_reply))
                await self._store.save(identity, history)

            latency_ms = int((time.time() - start) * 1000)
            logger.info(
                f"[Conversation] {identity} -> {len(visible)} chars "
                f"({latency_ms}ms, {response.usage.input_tokens} in / {response.usage.output_tokens} out)"
            )
            return visible

        except Exception:
            logger.exception(f"Error sending message to Anthropic for user {identity}")
            return BACKEND_FAILURE_TEXT
        finally:
            if thinking is not None:
                await self._remove_thinking(identity, thinking)

    # -- Marker side effects -------------------------------------------------

    async def _handle_markers(self, identity: str, reply: str) -> None:
        """Trigger side effects for marker blocks. Superwish takes priority."""
        superwish = markers.extract(reply, markers.SUPERWISH)
        if superwish is not None:
            audit.wish_detected(identity=identity, kind="superwish")
            await self._send_invitation(identity)
            return

        if markers.extract(reply, markers.WISH) is not None:
            audit.wish_detected(identity=identity, kind="wish")

    async def _send_invitation(self, identity: str) -> None:
        """Send the private channel invitation in both languages."""
        sent = 0
        for text in (
            superwish_invitation_ru(self._invite_link),
            superwish_invitation_en(self._invite_link),
        ):
            try:
                await self._transport.send(identity, text, parse_mode=INVITATION_PARSE_MODE)
                sent += 1
            except Exception as e:
                logger.error(f"Failed to send SUPERWISH channel invitation to user {identity}: {e}")
        if sent:
            logger.info(f"SUPERWISH channel invitation sent to user {identity} ({sent}/2)")

    # -- Transport side channel ----------------------------------------------

    async def _typing(self, identity: str) -> None:
        try:
            await self._transport.typing(identity)
        except Exception as e:
            logger.debug(f"Typing indicator failed for user {identity}: {e}")

    async def _show_thinking(self, identity: str) -> Any:
        try:
            return await self._transport.send(identity, THINKING_TEXT)
        except Exception as e:
            logger.warning(f"Failed to send thinking message to user {identity}: {e}")
            return None

    async def _remove_thinking(self, identity: str, handle: Any) -> None:
        try:
            await self._transport.delete(identity, handle)
        except Exception as e:
            logger.debug(f"Failed to delete thinking message for user {identity}: {e}")
