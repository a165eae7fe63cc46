# Core Module - Shared Utilities
#
# Core module provides shared functionality across all Strongbox modules:
# - Error taxonomy
# - Audit logging
# - SQLite connection helper

from .audit_log import (
    AuditLogger,
    EventSeverity,
    EventType,
    configure_logging,
    get_audit_logger,
    set_audit_logger,
)
from .exceptions import (
    AuthenticationFailure,
    AuthorizationFailure,
    CryptoError,
    IntegrityError,
    SessionClosedError,
    StrongboxError,
    UnsealError,
    ValidationError,
)

__all__ = [
    # Audit Logging
    "AuditLogger",
    "EventType",
    "EventSeverity",
    "configure_logging",
    "get_audit_logger",
    "set_audit_logger",
    # Errors
    "StrongboxError",
    "ValidationError",
    "AuthenticationFailure",
    "AuthorizationFailure",
    "IntegrityError",
    "UnsealError",
    "SessionClosedError",
    "CryptoError",
]
