"""
Tests for process wiring: startup reboot notice and shutdown.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from channels.messages import REBOOT_TEXT
from main import WishGranterBot
from session.store import Message


@pytest.fixture
def bot():
    return WishGranterBot()


class TestNotifyReboot:

    def test_every_previous_identity_is_notified(self, bot):
        bot.adapter.send = AsyncMock(return_value=1)
        asyncio.run(bot.notify_reboot(["10", "20"]))
        assert [c.args for c in bot.adapter.send.await_args_list] == [
            ("10", REBOOT_TEXT),
            ("20", REBOOT_TEXT),
        ]

    def test_failure_does_not_stop_the_rest(self, bot):
        bot.adapter.send = AsyncMock(side_effect=[RuntimeError("blocked"), 2])
        asyncio.run(bot.notify_reboot(["10", "20"]))
        assert bot.adapter.send.await_count == 2


class TestWiring:

    def test_store_notifies_through_adapter(self, bot):
        bot.adapter.send = AsyncMock(return_value=1)
        asyncio.run(bot.store.clear("42"))
        bot.adapter.send.assert_awaited_once()

    def test_fresh_key_per_process(self, bot):
        asyncio.run(bot.store.save("4242", [Message.participant("hi")]))
        assert len(asyncio.run(bot.store.load("4242"))) == 1
        assert asyncio.run(WishGranterBot().store.load("4242")) == []
        assert "4242" in bot.store.stored_identities()

    def test_stop_releases_start(self, bot):
        bot.adapter.stop = AsyncMock()

        async def run():
            await bot.stop()
            assert bot._shutdown_event.is_set()

        asyncio.run(run())
        bot.adapter.stop.assert_awaited_once()
