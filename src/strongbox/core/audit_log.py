# Core - Security Audit Log
#
# Append-only structured log of every authentication and vault event.
# Operators use it to tell attack/misuse (AUTH_FAILED) apart from storage
# corruption (INTEGRITY_ERROR). Secrets, passphrases and ciphertexts are
# never passed to it; usernames and record ids are.

import logging
import os
import socket
import sys
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional
from uuid import uuid4

import structlog

AUDIT_LOGGER_NAME = "strongbox.audit"


class EventType(str, Enum):
    """Types of security events that can be logged."""
    # Authentication
    USER_REGISTERED = "user.registered"
    USER_REGISTER_REJECTED = "user.register.rejected"
    AUTH_SUCCEEDED = "auth.succeeded"
    AUTH_FAILED = "auth.failed"

    # Session lifecycle
    SESSION_OPENED = "session.opened"
    SESSION_CLOSED = "session.closed"

    # Vault / credentials
    VAULT_CREATED = "vault.created"
    CREDENTIAL_CREATED = "credential.created"
    CREDENTIAL_UPDATED = "credential.updated"
    CREDENTIAL_DELETED = "credential.deleted"
    CREDENTIAL_REVEALED = "credential.revealed"
    ACCESS_DENIED = "credential.access.denied"

    # Data integrity
    INTEGRITY_ERROR = "integrity.error"

    # System
    SYSTEM_START = "system.start"
    SYSTEM_STOP = "system.stop"


class EventSeverity(str, Enum):
    """
    Severity levels for security events.

    - INFO: Normal activity (logged only)
    - INVESTIGATE: Something unusual (failed login, denied access)
    - ALERT: Repeated or suspicious failures
    - CRITICAL: Data corruption, operator attention required
    """
    INFO = "info"
    INVESTIGATE = "investigate"
    ALERT = "alert"
    CRITICAL = "critical"


def _configure_structlog() -> None:
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog and the stdlib root level for the process."""
    _configure_structlog()
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


class AuditLogger:
    """
    Append-only audit logger for security events.

    Features:
    - Structured JSON lines (structlog)
    - Automatic timestamp and event ID
    - One file per day under log_dir
    """

    def __init__(self, log_dir: Optional[Path] = None):
        """
        Initialize audit logger.

        Args:
            log_dir: Directory for audit logs (default: ./audit_logs)
        """
        self.log_dir = Path(log_dir) if log_dir else Path("./audit_logs")
        self.log_dir.mkdir(parents=True, exist_ok=True)

        if not structlog.is_configured():
            _configure_structlog()

        self._setup_file_handler()
        self.logger = structlog.get_logger(AUDIT_LOGGER_NAME)

    def _setup_file_handler(self):
        """Attach a daily file handler to the audit logger (once per file)."""
        today = datetime.now().strftime("%Y-%m-%d")
        self.log_file = (self.log_dir / f"audit_{today}.log").resolve()

        audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
        audit_logger.setLevel(logging.INFO)
        for handler in audit_logger.handlers:
            if getattr(handler, "baseFilename", None) == str(self.log_file):
                return

        file_handler = logging.FileHandler(self.log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(message)s"))  # structlog renders
        audit_logger.addHandler(file_handler)

    def close(self) -> None:
        """Detach and close this logger's file handler."""
        audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)
        for handler in list(audit_logger.handlers):
            if getattr(handler, "baseFilename", None) == str(self.log_file):
                audit_logger.removeHandler(handler)
                handler.close()

    def log_event(
        self,
        event_type: EventType,
        severity: EventSeverity,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        user_context: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Log a security event (append-only).

        Args:
            event_type: Type of event (from EventType enum)
            severity: Severity level (from EventSeverity enum)
            message: Human-readable event description
            details: Additional event details (never secrets)
            user_context: User context (username, vault_id, etc.)

        Returns:
            str: Event ID (UUID) for reference
        """
        event_id = str(uuid4())
        event_data = {
            "event_id": event_id,
            "event_type": event_type.value,
            "severity": severity.value,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "details": details or {},
            "user_context": user_context or self._get_default_user_context(),
        }
        self.logger.info("security_event", **event_data)
        return event_id

    def log_auth_failure(self, username: str, reason: str) -> str:
        """
        Record why a login failed. The reason stays here; the caller only
        ever sees a generic AuthenticationFailure.
        """
        return self.log_event(
            event_type=EventType.AUTH_FAILED,
            severity=EventSeverity.INVESTIGATE,
            message="Authentication failed",
            details={"username": username, "reason": reason},
        )

    def log_integrity_error(self, entity: str, message: str, details: Optional[Dict[str, Any]] = None) -> str:
        """Record a storage-corruption signal (distinct from auth failures)."""
        event_details = dict(details or {})
        event_details["entity"] = entity
        return self.log_event(
            event_type=EventType.INTEGRITY_ERROR,
            severity=EventSeverity.CRITICAL,
            message=message,
            details=event_details,
        )

    def log_vault_event(
        self,
        event_type: EventType,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Log a Vault event (credential write, reveal, delete).

        Args:
            details: Additional details (never log actual passwords!)
        """
        return self.log_event(
            event_type=event_type,
            severity=EventSeverity.INFO,
            message=f"Vault: {message}",
            details=details,
        )

    def _get_default_user_context(self) -> Dict[str, Any]:
        """Get default user context (OS user, hostname, etc.)."""
        return {
            "os_user": os.getenv("USERNAME") or os.getenv("USER"),
            "hostname": socket.gethostname(),
            "platform": sys.platform,
        }


# Global logger instance (used by the CLI; services take one explicitly)
_audit_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    """Get global audit logger (singleton pattern)."""
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = AuditLogger()
    return _audit_logger


def set_audit_logger(instance: Optional[AuditLogger]) -> None:
    """Replace the singleton (startup wiring and tests)."""
    global _audit_logger
    _audit_logger = instance
