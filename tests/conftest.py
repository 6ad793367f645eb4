"""
Shared pytest configuration for Wish Granter tests.

Sets required environment variables at module level BEFORE any project imports.
pydantic-settings reads env vars when config.py is first imported, so these must
be set before test collection triggers project imports.
"""

import itertools
import os
import tempfile
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

# Required by config.py (no default, pydantic-settings raises without it)
os.environ.setdefault("ANTHROPIC_API_KEY", "test-placeholder")
os.environ.setdefault("BOT_TOKEN", "test-placeholder")

# Keep audit logs and history out of the source tree
_TEST_ROOT = Path(tempfile.mkdtemp(prefix="wish-granter-tests-"))
os.environ.setdefault("WISH_GRANTER_LOG_DIR", str(_TEST_ROOT / "logs"))
os.environ.setdefault("DATA_DIR", str(_TEST_ROOT / "data"))


@pytest.fixture
def transport():
    """A Transport whose send() returns increasing message ids."""
    ids = itertools.count(1)
    fake = MagicMock()
    fake.send = AsyncMock(side_effect=lambda *args, **kwargs: next(ids))
    fake.delete = AsyncMock(return_value=None)
    fake.typing = AsyncMock(return_value=None)
    return fake


@pytest.fixture
def encryption():
    from security.crypto import EncryptionContext
    return EncryptionContext.generate()


@pytest.fixture
def store(tmp_path, encryption, transport):
    from session.store import SessionStore
    return SessionStore(tmp_path / "chat_history", encryption, notifier=transport)
