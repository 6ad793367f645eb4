"""
Tests for settings loading and startup validation.
"""

import pytest

from config import PLACEHOLDER_ADMIN_ID, Settings, validate_settings


def _settings(**overrides):
    values = {"anthropic_api_key": "sk-test", "bot_token": "123:abc"}
    values.update(overrides)
    return Settings(**values)


class TestSettings:

    def test_defaults(self):
        current = _settings()
        assert current.rate_limit_window_ms == 60_000
        assert current.rate_limit_requests == 10
        assert current.max_tokens == 1000
        assert current.superwish == "financial freedom"

    def test_history_dir_under_data_dir(self, tmp_path):
        current = _settings(data_dir=tmp_path)
        assert current.history_dir == tmp_path / "chat_history"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("SUPERWISH", "a house by the sea")
        monkeypatch.setenv("RATE_LIMIT_REQUESTS", "3")
        current = Settings()
        assert current.superwish == "a house by the sea"
        assert current.rate_limit_requests == 3


class TestValidateSettings:

    def test_missing_bot_token_exits(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            validate_settings(_settings(bot_token=""))
        assert exc_info.value.code == 1
        assert "BOT_TOKEN" in capsys.readouterr().out

    def test_valid(self):
        validate_settings(_settings(admin_telegram_id="1001"))

    @pytest.mark.parametrize("admin", ["", PLACEHOLDER_ADMIN_ID])
    def test_missing_admin_only_warns(self, admin, caplog):
        validate_settings(_settings(admin_telegram_id=admin))
        assert "ADMIN_TELEGRAM_ID" in caplog.text
