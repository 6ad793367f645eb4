"""
Tests for operator authorization and the /send relay.
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from channels.admin_relay import AdminCommand, AdminRelay, parse_send_command
from channels.messages import (
    RELAY_DENIED_TEXT,
    RELAY_FAILED_TEXT,
    RELAY_USAGE_TEXT,
    relay_confirm_text,
    relay_forward_text,
)
from config import PLACEHOLDER_ADMIN_ID
from security.operators import OperatorRegistry

OPERATOR = "1001"


@pytest.fixture
def relay(transport):
    return AdminRelay(transport, OperatorRegistry(lambda: OPERATOR))


class TestParseSendCommand:

    def test_basic(self):
        assert parse_send_command("/send 123456 Hello") == AdminCommand(target="123456", body="Hello")

    def test_multiline_body(self):
        command = parse_send_command("/send 42 line one\nline two")
        assert command.body == "line one\nline two"

    def test_bot_suffix(self):
        assert parse_send_command("/send@WishGranterBot 42 hi").target == "42"

    @pytest.mark.parametrize("raw", [
        "/send",
        "/send 42",
        "/send abc hello",
        "/send -42 hello",
        "/send ١٢٣ hi",
        "send 42 hello",
        "",
    ])
    def test_malformed(self, raw):
        assert parse_send_command(raw) is None


class TestOperatorRegistry:

    def test_single_id(self):
        registry = OperatorRegistry(lambda: "1001")
        assert registry.is_active_operator("1001")
        assert not registry.is_active_operator("1002")

    def test_comma_separated(self):
        registry = OperatorRegistry(lambda: "1001, 1002")
        assert registry.operator_ids() == ["1001", "1002"]
        assert registry.is_active_operator("1002")

    def test_placeholder_is_ignored(self):
        registry = OperatorRegistry(lambda: PLACEHOLDER_ADMIN_ID)
        assert registry.operator_ids() == []
        assert not registry.is_active_operator(PLACEHOLDER_ADMIN_ID)

    def test_unset(self):
        assert not OperatorRegistry(lambda: "").is_active_operator("1001")

    def test_reads_settings_on_every_lookup(self):
        fake_settings = SimpleNamespace(admin_telegram_id="")
        registry = OperatorRegistry.from_settings(fake_settings)
        assert not registry.is_active_operator("7")
        fake_settings.admin_telegram_id = "7"
        assert registry.is_active_operator("7")


class TestRelay:

    @pytest.mark.parametrize("raw", [
        "/send 123456 Hello",
        "/send 1001 Hello",
        "/send abc",
        "/send",
    ])
    def test_non_operator_never_forwards(self, relay, transport, raw):
        asyncio.run(relay.relay("555", raw))
        transport.send.assert_awaited_once_with("555", RELAY_DENIED_TEXT)

    def test_forward_and_confirm(self, relay, transport):
        asyncio.run(relay.relay(OPERATOR, "/send 123456 Hello"))

        assert transport.send.await_count == 2
        forward, confirm = transport.send.await_args_list
        assert forward.args == ("123456", relay_forward_text("Hello"))
        assert "Hello" in forward.args[1]
        assert confirm.args == (OPERATOR, relay_confirm_text("123456"))

    def test_multiline_forward(self, relay, transport):
        asyncio.run(relay.relay(OPERATOR, "/send 42 Hi\nHow are you?"))
        assert transport.send.await_args_list[0].args[1].endswith("Hi\nHow are you?")

    def test_malformed_gets_usage(self, relay, transport):
        asyncio.run(relay.relay(OPERATOR, "/send abc hello"))
        transport.send.assert_awaited_once_with(OPERATOR, RELAY_USAGE_TEXT)

    def test_non_ascii_digits_are_not_a_target(self, relay, transport):
        # Arabic-Indic digits would int() to an unrelated ASCII id
        asyncio.run(relay.relay(OPERATOR, "/send ١٢٣ hi"))
        transport.send.assert_awaited_once_with(OPERATOR, RELAY_USAGE_TEXT)

    def test_forward_failure(self, relay, transport):
        async def send(identity, text, **kwargs):
            if identity == "42":
                raise RuntimeError("chat not found")
            return 1

        transport.send = AsyncMock(side_effect=send)
        asyncio.run(relay.relay(OPERATOR, "/send 42 Hello"))
        assert transport.send.await_args_list[-1].args == (OPERATOR, RELAY_FAILED_TEXT)

    def test_feedback_failure_is_swallowed(self, transport):
        transport.send = AsyncMock(side_effect=RuntimeError("blocked"))
        relay = AdminRelay(transport, OperatorRegistry(lambda: ""))
        asyncio.run(relay.relay("555", "/send 42 hi"))

    def test_outcomes_are_audited(self, relay):
        with patch("channels.admin_relay.audit") as mock_audit:
            asyncio.run(relay.relay("555", "/send 42 hi"))
            asyncio.run(relay.relay(OPERATOR, "/send 42 hi"))
        outcomes = [c.kwargs["outcome"] for c in mock_audit.admin_relay.call_args_list]
        assert outcomes == ["denied", "sent"]
