# Vault - Authenticated Session
#
# A Session is the only capability field encryption accepts. It owns the
# unwrapped vault key and the login passphrase in zeroizable buffers and
# wipes both on close(), on leaving a `with` block, or on collection.
#
# States: ANONYMOUS -> AUTHENTICATING -> AUTHENTICATED -> TERMINATED
# There is no way back: a terminated session stays terminated and every
# login builds a new, independent Session.

import logging
import threading
import uuid
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, NamedTuple, Optional, Tuple

from ..core.audit_log import AuditLogger, EventSeverity, EventType
from ..core.exceptions import SessionClosedError
from ..crypto.secret import SecretBytes

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Authentication state of a login attempt or session."""
    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    TERMINATED = "terminated"


_TRANSITIONS = {
    SessionState.ANONYMOUS: {SessionState.AUTHENTICATING},
    SessionState.AUTHENTICATING: {SessionState.AUTHENTICATED, SessionState.TERMINATED},
    SessionState.AUTHENTICATED: {SessionState.TERMINATED},
    SessionState.TERMINATED: set(),
}


def check_transition(current: SessionState, target: SessionState) -> SessionState:
    """
    Validate a state change.

    Raises:
        SessionClosedError: If current is TERMINATED
        RuntimeError: For any other transition the state machine does not allow
    """
    if target in _TRANSITIONS[current]:
        return target
    if current is SessionState.TERMINATED:
        raise SessionClosedError()
    raise RuntimeError(f"Invalid session transition: {current.value} -> {target.value}")


class LoginAttempt:
    """
    Tracks one login through ANONYMOUS -> AUTHENTICATING -> (AUTHENTICATED | TERMINATED).

    AuthService drives it; it exists so the state of a failed attempt is
    observable (always TERMINATED) and so a finished attempt cannot be reused.
    """

    def __init__(self, username: str):
        self.username = username
        self.state = SessionState.ANONYMOUS

    def begin(self) -> None:
        self.state = check_transition(self.state, SessionState.AUTHENTICATING)

    def succeed(self) -> None:
        self.state = check_transition(self.state, SessionState.AUTHENTICATED)

    def fail(self) -> None:
        self.state = check_transition(self.state, SessionState.TERMINATED)


class SessionSecrets(NamedTuple):
    """Read-only views handed out by Session.use(); valid only inside the block."""
    vault_key: memoryview
    passphrase: memoryview


class Session:
    """
    Authenticated vault session.

    Usage:
        with auth.login("alice", password) as session:
            cipher = fields.encrypt_field(session, b"hunter2")
        # vault key and passphrase are zeroed here

    Thread safety:
        use() and close() share one re-entrant lock, so close() waits for an
        in-flight field operation and a field operation never sees a
        half-wiped key.

    Attributes:
        user_id: Authenticated user
        username: Authenticated username
        vault_id: The user's vault (ownership checks compare against this)
    """

    def __init__(
        self,
        user_id: uuid.UUID,
        username: str,
        vault_id: uuid.UUID,
        vault_key: SecretBytes,
        passphrase: SecretBytes,
        audit: Optional[AuditLogger] = None,
    ):
        self.user_id = user_id
        self.username = username
        self.vault_id = vault_id
        self._vault_key = vault_key
        self._passphrase = passphrase
        self._audit = audit
        self._lock = threading.RLock()
        self._state = SessionState.AUTHENTICATED

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_active(self) -> bool:
        return self._state is SessionState.AUTHENTICATED

    @contextmanager
    def use(self) -> Iterator[SessionSecrets]:
        """
        Exclusive access to the secret material for one operation.

        Raises:
            SessionClosedError: If the session has been closed
        """
        with self._lock:
            if self._state is not SessionState.AUTHENTICATED:
                raise SessionClosedError()
            secrets = SessionSecrets(self._vault_key.view(), self._passphrase.view())
            try:
                yield secrets
            finally:
                secrets.vault_key.release()
                secrets.passphrase.release()

    def close(self) -> None:
        """Zeroize the vault key and passphrase and terminate (idempotent)."""
        with self._lock:
            if self._state is SessionState.TERMINATED:
                return
            self._wipe()
            self._state = check_transition(self._state, SessionState.TERMINATED)
        logger.debug("Session closed for vault %s", self.vault_id)
        if self._audit is not None:
            self._audit.log_event(
                event_type=EventType.SESSION_CLOSED,
                severity=EventSeverity.INFO,
                message="Session closed",
                details={"username": self.username, "vault_id": str(self.vault_id)},
            )

    logout = close

    def _wipe(self) -> None:
        self._vault_key.wipe()
        self._passphrase.wipe()

    def _secret_buffers(self) -> Tuple[bytearray, bytearray]:
        """Underlying (vault_key, passphrase) storage, for zeroization tests."""
        return self._vault_key.buffer, self._passphrase.buffer

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __del__(self):
        # Last resort when the holder never closed; no lock or audit at teardown
        vault_key = getattr(self, "_vault_key", None)
        passphrase = getattr(self, "_passphrase", None)
        if vault_key is not None:
            vault_key.wipe()
        if passphrase is not None:
            passphrase.wipe()

    def __repr__(self) -> str:
        return f"<Session {self.username!r} vault={self.vault_id} {self._state.value}>"
