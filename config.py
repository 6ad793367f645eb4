"""
Wish Granter configuration settings.

Loads configuration from environment variables via pydantic-settings.
All API keys and sensitive values should be set in .env file.
"""

import logging

from pydantic_settings import BaseSettings
from pathlib import Path

# Placeholder id shipped in example .env files; treated as "no operator configured"
PLACEHOLDER_ADMIN_ID = "123456789"


class Settings(BaseSettings):
    anthropic_api_key: str
    bot_token: str = ""                        # Bot token from @BotFather (REQUIRED at startup)

    # Operators allowed to use /send (comma-separated Telegram user IDs)
    admin_telegram_id: str = ""

    # Wish detection
    superwish: str = "financial freedom"       # Target phrase injected into the system instruction
    private_channel_link: str = "https://t.me/your_private_channel"

    # AI backend
    claude_model: str = "claude-sonnet-4-5"
    max_tokens: int = 1000
    backend_timeout: float = 60.0              # Seconds before a backend call counts as failed

    # Per-participant throttling
    rate_limit_window_ms: int = 60_000
    rate_limit_requests: int = 10

    # Encrypted history
    data_dir: Path = Path(__file__).parent / "data"
    history_max_messages: int = 100            # 0 = keep everything

    # Observability
    log_level: str = "INFO"
    sentry_dsn: str = ""                       # Sentry DSN for error tracking

    @property
    def history_dir(self) -> Path:
        return self.data_dir / "chat_history"

    class Config:
        env_file = str(Path(__file__).parent / ".env")
        extra = "ignore"  # Allow extra env vars without errors

settings = Settings()


def validate_settings(current: Settings | None = None) -> None:
    """Fail fast if the bot token is missing.

    Called at startup by main.py. Missing operator configuration only warns:
    the bot runs, /send is simply refused for everyone.
    """
    current = current or settings

    if not current.bot_token:
        print("\n" + "=" * 70)
        print("FATAL: Missing required configuration")
        print("=" * 70)
        print("  - BOT_TOKEN is not set")
        print()
        print("Set BOT_TOKEN in your .env file (token from @BotFather).")
        print("=" * 70 + "\n")
        raise SystemExit(1)

    admin = current.admin_telegram_id.strip()
    if not admin or admin == PLACEHOLDER_ADMIN_ID:
        logging.getLogger(__name__).warning(
            "ADMIN_TELEGRAM_ID not set; /send is disabled for every sender."
        )
