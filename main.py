#!/usr/bin/env python3
"""
Wish Granter bot

Main entry point: wires the conversation core to Telegram and runs until
SIGINT/SIGTERM.

Usage:
    python main.py

Every start generates a fresh encryption key, so history saved by the
previous process becomes unreadable. Participants who had history get a
"Memory Reboot" notice on startup.
"""

import asyncio
import logging
import signal

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration

from config import settings, validate_settings

logger = logging.getLogger("wish_granter.main")

__version__ = "1.0.0"


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s [%(name)s] %(levelname)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    # httpx logs every Telegram poll at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def init_sentry() -> None:
    """Initialize Sentry error tracking when SENTRY_DSN is set."""
    if not settings.sentry_dsn:
        logger.info("[Sentry] Disabled (no SENTRY_DSN)")
        return

    try:
        sentry_sdk.init(
            dsn=settings.sentry_dsn,
            environment="production",
            integrations=[
                LoggingIntegration(
                    level=logging.INFO,        # Breadcrumbs for INFO+
                    event_level=logging.ERROR,  # Events for ERROR+
                ),
            ],
            send_default_pii=False,
            release=f"wish-granter@{__version__}",
        )
        sentry_sdk.set_tag("server_type", "wish-granter")
        logger.info("[Sentry] Initialized error tracking")
    except Exception as e:
        logger.warning(f"[Sentry] Could not initialize: {e}")


class WishGranterBot:
    """Owns the process-lifetime components and the Telegram adapter."""

    def __init__(self) -> None:
        from channels.admin_relay import AdminRelay
        from channels.registry import create_adapter_from_config
        from llm.brain import ConversationOrchestrator
        from llm.providers import get_llm_provider
        from security.audit import audit
        from security.crypto import EncryptionContext
        from security.operators import OperatorRegistry
        from security.rate_limit import RateLimiter
        from session.store import SessionStore

        encryption = EncryptionContext.generate()
        audit.startup(component="session_store", detail="generated process encryption key")

        self.rate_limiter = RateLimiter(
            window_ms=settings.rate_limit_window_ms,
            limit=settings.rate_limit_requests,
        )
        self.adapter = create_adapter_from_config(settings, self.rate_limiter)
        self.store = SessionStore(
            settings.history_dir,
            encryption,
            notifier=self.adapter,
            max_messages=settings.history_max_messages,
        )
        self.orchestrator = ConversationOrchestrator(
            self.store,
            get_llm_provider(),
            self.adapter,
            superwish=settings.superwish,
            invite_link=settings.private_channel_link,
            timeout=settings.backend_timeout,
            max_tokens=settings.max_tokens,
        )
        self.operators = OperatorRegistry.from_settings(settings)
        self.relay = AdminRelay(self.adapter, self.operators)
        self._shutdown_event = asyncio.Event()

    async def start(self) -> None:
        from channels.registry import (
            ADMIN_COMMANDS,
            USER_COMMANDS,
            create_command_handlers,
            create_message_handler,
        )

        # Blobs on disk were written under the previous process's key
        previous = self.store.stored_identities()

        await self.adapter.start(
            create_message_handler(self.orchestrator),
            create_command_handlers(self.store, self.relay, self.rate_limiter),
        )

        try:
            await self.adapter.set_commands(
                USER_COMMANDS,
                ADMIN_COMMANDS,
                self.operators.operator_ids(),
            )
        except Exception as e:
            logger.error(f"Error setting up commands: {e}")

        await self.notify_reboot(previous)
        logger.info("Bot ready - waiting for messages")

        await self._shutdown_event.wait()

    async def notify_reboot(self, identities: list[str]) -> None:
        """Tell participants with stale history that their context was reset."""
        from channels.messages import REBOOT_TEXT

        for identity in identities:
            try:
                await self.adapter.send(identity, REBOOT_TEXT)
            except Exception as e:
                logger.warning(f"Failed to send reboot notification to user {identity}: {e}")
        if identities:
            logger.info(f"Sent reboot notification to {len(identities)} user(s)")

    async def stop(self) -> None:
        logger.info("Bot shutting down...")
        try:
            await self.adapter.stop()
        finally:
            self._shutdown_event.set()
        logger.info("Bot stopped")


def setup_signal_handlers(bot: WishGranterBot) -> None:
    """Set up graceful shutdown on SIGTERM/SIGINT."""
    loop = asyncio.get_running_loop()

    def handle_signal():
        logger.info("Received shutdown signal")
        asyncio.create_task(bot.stop())

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, handle_signal)


async def run_bot() -> None:
    """Run the bot until shutdown."""
    bot = WishGranterBot()
    setup_signal_handlers(bot)
    try:
        await bot.start()
    except Exception as e:
        logger.error(f"Failed to start bot: {e}")
        await bot.stop()
        raise


def main():
    validate_settings()
    configure_logging()
    init_sentry()
    logger.info("Application starting...")
    asyncio.run(run_bot())


if __name__ == "__main__":
    main()
