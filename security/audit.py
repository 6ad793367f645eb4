"""Structured audit logging for security-relevant events.

Writes JSON-formatted log entries to a dedicated audit log file with
automatic rotation. Covers throttling, operator relays, history erasure and
inbound message metadata (who wrote when, never what).

Usage:
    from security.audit import audit

    audit.rate_limit(identity="42", limit=10, retry_after_ms=3000)
    audit.admin_relay(sender="1", target="42", outcome="sent")
    audit.history_cleared(identity="42")
"""

import json
import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path


class _JsonFormatter(logging.Formatter):
    """Emit each log record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S%z"),
            "level": record.levelname,
            "event": record.getMessage(),
        }
        # Merge any extra fields passed via `extra={"audit": {...}}`
        audit_data = getattr(record, "audit", None)
        if audit_data and isinstance(audit_data, dict):
            entry.update(audit_data)
        return json.dumps(entry, default=str)


def _setup_audit_logger() -> logging.Logger:
    """Create the audit logger with file + console handlers."""
    logger = logging.getLogger("wish_granter.audit")
    logger.setLevel(logging.INFO)
    logger.propagate = False  # Don't double-log to root

    if logger.handlers:
        return logger  # Already configured (module re-import)

    # File handler: logs/audit.log with rotation
    log_dir = os.getenv("WISH_GRANTER_LOG_DIR", str(Path(__file__).parent.parent / "logs"))
    os.makedirs(log_dir, exist_ok=True)
    audit_path = os.path.join(log_dir, "audit.log")

    file_handler = RotatingFileHandler(
        audit_path, maxBytes=10 * 1024 * 1024, backupCount=5  # 10 MB, keep 5 old
    )
    file_handler.setFormatter(_JsonFormatter())
    logger.addHandler(file_handler)

    # Also log to stderr so it shows up in docker logs / journalctl
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(_JsonFormatter())
    logger.addHandler(console_handler)

    return logger


_logger = _setup_audit_logger()


class AuditLog:
    """Convenience methods for common audit events."""

    @staticmethod
    def rate_limit(*, identity: str, limit: int, retry_after_ms: int | None) -> None:
        """Log a throttled request."""
        _logger.warning("rate_limit", extra={"audit": {
            "action": "rate_limit",
            "component": "rate_limiter",
            "identity": identity,
            "limit": limit,
            "retry_after_ms": retry_after_ms,
        }})

    @staticmethod
    def message_received(*, identity: str) -> None:
        """Log that a participant started a conversation turn."""
        _logger.info("message_received", extra={"audit": {
            "action": "message_received",
            "component": "conversation",
            "identity": identity,
        }})

    @staticmethod
    def wish_detected(*, identity: str, kind: str) -> None:
        """Log a wish or superwish marker found in a backend reply."""
        _logger.info("wish_detected", extra={"audit": {
            "action": "wish_detected",
            "component": "conversation",
            "identity": identity,
            "kind": kind,
        }})

    @staticmethod
    def admin_relay(*, sender: str, outcome: str, target: str = "") -> None:
        """Log an operator relay attempt (denied, malformed, sent, failed)."""
        level = logging.INFO if outcome == "sent" else logging.WARNING
        _logger.log(level, "admin_relay", extra={"audit": {
            "action": "admin_relay",
            "component": "admin_relay",
            "sender": sender,
            "target": target,
            "outcome": outcome,
        }})

    @staticmethod
    def history_cleared(*, identity: str, existed: bool) -> None:
        """Log an explicit history erasure."""
        _logger.info("history_cleared", extra={"audit": {
            "action": "history_cleared",
            "component": "session_store",
            "identity": identity,
            "existed": existed,
        }})

    @staticmethod
    def startup(*, component: str, detail: str) -> None:
        """Log a security-relevant startup event."""
        _logger.info("startup", extra={"audit": {
            "action": "startup",
            "component": component,
            "detail": detail,
        }})


audit = AuditLog()
