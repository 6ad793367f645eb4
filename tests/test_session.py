"""
Tests for the encrypted session store.

Tests:
- Message validation and serialization
- History capping
- Load/save cycle, including unreadable blobs
- Clear erases and notifies
- Per-identity locking
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from security.crypto import DecryptionError, EncryptionContext
from session.store import (
    HISTORY_CLEARED_TEXT,
    Message,
    SessionStore,
    cap_history,
    deserialize_history,
    serialize_history,
)


def _conversation(turns: int) -> list[Message]:
    history = []
    for i in range(turns):
        history.append(Message.participant(f"question {i}", timestamp=i * 2))
        history.append(Message.assistant(f"answer {i}", timestamp=i * 2 + 1))
    return history


class TestMessage:

    def test_participant_has_user_role(self):
        msg = Message.participant("hello", timestamp=5)
        assert msg.role == "user"
        assert msg.timestamp == 5

    def test_default_timestamp_is_millis(self):
        msg = Message.assistant("hi")
        assert msg.timestamp > 1_600_000_000_000

    def test_to_dict(self):
        assert Message.participant("hello", timestamp=1).to_dict() == {
            "role": "user", "content": "hello", "timestamp": 1,
        }

    def test_from_dict(self):
        msg = Message.from_dict({"role": "assistant", "content": "hi there", "timestamp": 7})
        assert msg == Message(role="assistant", content="hi there", timestamp=7)

    @pytest.mark.parametrize("data", [
        {"role": "system", "content": "x", "timestamp": 1},
        {"role": "user", "content": 3, "timestamp": 1},
        {"role": "user", "content": "x", "timestamp": "yesterday"},
        {"role": "user", "content": "x", "timestamp": True},
        {"role": "user", "content": "x"},
    ])
    def test_from_dict_rejects_bad_shapes(self, data):
        with pytest.raises((ValueError, TypeError, KeyError)):
            Message.from_dict(data)


class TestSerialization:

    def test_round_trip_keeps_unicode(self):
        history = [Message.participant("Хочу путешествовать", timestamp=1)]
        payload = serialize_history(history)
        assert "Хочу" in payload
        assert deserialize_history(payload) == history

    @pytest.mark.parametrize("payload", ["not json", "{}", '[{"role": "user"}]', "[1, 2]"])
    def test_malformed_payload(self, payload):
        with pytest.raises(DecryptionError):
            deserialize_history(payload)


class TestCapHistory:

    def test_short_history_untouched(self):
        history = _conversation(2)
        assert cap_history(history, 10) == history

    def test_zero_means_unlimited(self):
        history = _conversation(60)
        assert cap_history(history, 0) == history

    def test_keeps_newest(self):
        history = _conversation(5)
        capped = cap_history(history, 4)
        assert capped == history[-4:]

    def test_never_starts_with_assistant(self):
        history = _conversation(5)
        capped = cap_history(history, 3)
        assert capped[0].role == "user"
        assert capped == history[-2:]


class TestLoadSave:

    def test_missing_file_loads_empty_without_decrypting(self, store):
        with patch.object(EncryptionContext, "decrypt") as mock_decrypt:
            assert asyncio.run(store.load("42")) == []
        mock_decrypt.assert_not_called()

    def test_round_trip(self, store):
        history = _conversation(2)
        assert asyncio.run(store.save("42", history)) is True
        assert asyncio.run(store.load("42")) == history

    def test_blob_on_disk_is_encrypted(self, store):
        asyncio.run(store.save("42", [Message.participant("my secret wish", timestamp=1)]))
        blob = store.path_for("42").read_text()
        assert "secret" not in blob
        assert len(blob.split(":")) == 2

    def test_save_replaces_whole_history(self, store):
        asyncio.run(store.save("42", _conversation(3)))
        asyncio.run(store.save("42", _conversation(1)))
        assert len(asyncio.run(store.load("42"))) == 2

    def test_other_process_key_loads_empty(self, store):
        asyncio.run(store.save("42", _conversation(1)))
        restarted = SessionStore(store.history_dir, EncryptionContext.generate())
        assert asyncio.run(restarted.load("42")) == []

    def test_corrupt_blob_loads_empty(self, store):
        path = store.path_for("42")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("garbage")
        assert asyncio.run(store.load("42")) == []

    def test_non_utf8_blob_loads_empty(self, store):
        path = store.path_for("42")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"\xff\xfe\x00garbage")
        assert asyncio.run(store.load("42")) == []

    def test_save_failure_returns_false(self, store):
        with patch("session.store.atomic_text_write", side_effect=OSError("disk full")):
            assert asyncio.run(store.save("42", _conversation(1))) is False
        assert not store.path_for("42").exists()

    def test_save_applies_cap(self, tmp_path, encryption):
        capped = SessionStore(tmp_path, encryption, max_messages=4)
        asyncio.run(capped.save("42", _conversation(5)))
        loaded = asyncio.run(capped.load("42"))
        assert len(loaded) == 4
        assert loaded[0].content == "question 3"

    def test_identities_are_isolated(self, store):
        asyncio.run(store.save("1", [Message.participant("mine", timestamp=1)]))
        assert asyncio.run(store.load("2")) == []

    def test_unsafe_identity(self, store):
        with pytest.raises(ValueError):
            store.path_for("../etc/passwd")
        assert asyncio.run(store.load("../x")) == []
        assert asyncio.run(store.save("../x", _conversation(1))) is False

    def test_stored_identities(self, store):
        assert store.stored_identities() == []
        asyncio.run(store.save("20", _conversation(1)))
        asyncio.run(store.save("10", _conversation(1)))
        assert store.stored_identities() == ["10", "20"]


class TestClear:

    def test_removes_blob_and_notifies(self, store, transport):
        asyncio.run(store.save("42", _conversation(1)))
        assert asyncio.run(store.clear("42")) is True
        assert not store.path_for("42").exists()
        assert asyncio.run(store.load("42")) == []
        transport.send.assert_awaited_once_with("42", HISTORY_CLEARED_TEXT)

    def test_absent_blob_still_notifies(self, store, transport):
        assert asyncio.run(store.clear("42")) is False
        transport.send.assert_awaited_once_with("42", HISTORY_CLEARED_TEXT)

    def test_notifier_failure_is_swallowed(self, store, transport):
        transport.send = AsyncMock(side_effect=RuntimeError("chat not found"))
        asyncio.run(store.save("42", _conversation(1)))
        assert asyncio.run(store.clear("42")) is True

    def test_without_notifier(self, tmp_path, encryption):
        silent = SessionStore(tmp_path, encryption)
        assert asyncio.run(silent.clear("42")) is False

    def test_clear_is_audited(self, store):
        with patch("session.store.audit") as mock_audit:
            asyncio.run(store.clear("42"))
        mock_audit.history_cleared.assert_called_once_with(identity="42", existed=False)


class TestLocking:

    def test_same_identity_shares_lock(self, store):
        async def check():
            async with store.session("42"):
                assert store.lock("42").locked()
                assert not store.lock("43").locked()

        asyncio.run(check())

    def test_turns_for_one_identity_do_not_interleave(self, store):
        events = []

        async def turn(name):
            async with store.session("42"):
                events.append(f"{name}-start")
                await asyncio.sleep(0.01)
                events.append(f"{name}-end")

        async def run():
            await asyncio.gather(turn("a"), turn("b"))

        asyncio.run(run())
        assert events in (
            ["a-start", "a-end", "b-start", "b-end"],
            ["b-start", "b-end", "a-start", "a-end"],
        )

    def test_clear_waits_for_in_flight_turn(self, store):
        async def run():
            async with store.session("42"):
                clearing = asyncio.create_task(store.clear("42"))
                await asyncio.sleep(0.01)
                assert not clearing.done()
                await store.save("42", _conversation(1))
            await clearing

        asyncio.run(run())
        assert not store.path_for("42").exists()
