"""
Security module for Wish Granter.

Contains history encryption, per-participant throttling, the operator
registry and audit logging.
"""

from security.audit import audit, AuditLog
from security.crypto import DecryptionError, EncryptionContext, token_matches_any
from security.operators import OperatorRegistry
from security.rate_limit import Admission, RateLimiter

__all__ = [
    # Audit logging
    "audit",
    "AuditLog",
    # Crypto
    "DecryptionError",
    "EncryptionContext",
    "token_matches_any",
    # Operators
    "OperatorRegistry",
    # Throttling
    "Admission",
    "RateLimiter",
]
