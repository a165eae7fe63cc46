# Vault - Registration and Login
#
# register(): Argon2id hash + fresh vault key wrapped under the password.
# login(): user lookup, hash check, vault lookup and key unwrap must all
# pass. The caller only ever learns "authentication failed"; which check
# failed is written to the audit log. A corrupt stored hash is reported as
# IntegrityError instead, so operators can tell corruption from attacks.

import logging
from typing import Optional

from ..core.audit_log import AuditLogger, EventSeverity, EventType, get_audit_logger
from ..core.exceptions import AuthenticationFailure, IntegrityError, ValidationError
from ..crypto.password_hasher import PasswordHasher
from ..crypto.secret import SecretBytes
from ..crypto.vault_key import VaultKeyEnvelope
from ..db.models import User, Vault, validate_username
from ..db.repositories import RepositoryFactory
from .session import LoginAttempt, Session

logger = logging.getLogger(__name__)


class AuthService:
    """
    Registration and login against the user/vault repositories.

    Args:
        repos: Repositories bound to one Database handle
        hasher: Password hasher (Argon2id)
        vault_keys: Vault key envelope (wraps/unwraps the per-vault key)
        audit: Audit logger (default: process-wide instance)
    """

    def __init__(
        self,
        repos: RepositoryFactory,
        hasher: PasswordHasher,
        vault_keys: VaultKeyEnvelope,
        audit: Optional[AuditLogger] = None,
    ):
        self.repos = repos
        self.hasher = hasher
        self.vault_keys = vault_keys
        self.audit = audit or get_audit_logger()
        self._dummy_hash: Optional[bytes] = None
        self.last_attempt: Optional[LoginAttempt] = None

    def register(self, username: str, password: str) -> None:
        """
        Create a user and their vault.

        Raises:
            ValidationError: Malformed username, empty password or username taken
        """
        validate_username(username)
        if not password:
            raise ValidationError("Password cannot be empty")

        if self.repos.users.find_by_username(username) is not None:
            self.audit.log_event(
                event_type=EventType.USER_REGISTER_REJECTED,
                severity=EventSeverity.INFO,
                message="Registration rejected: username taken",
                details={"username": username},
            )
            raise ValidationError("Username is already in use")

        with SecretBytes.from_str(password) as secret:
            password_hash = self.hasher.hash(secret.view())
            vault_key, vault_key_cipher = self.vault_keys.create(secret.view())
            # Registration never uses the key itself
            vault_key.wipe()

        user = User.new(username, password_hash)
        self.repos.users.create(user)
        vault = Vault.new(user.id, vault_key_cipher)
        self.repos.vaults.create(vault)

        logger.info("User registered: %s", username)
        self.audit.log_event(
            event_type=EventType.USER_REGISTERED,
            severity=EventSeverity.INFO,
            message="User registered",
            details={"username": username, "user_id": str(user.id)},
        )
        self.audit.log_vault_event(
            EventType.VAULT_CREATED,
            "vault created",
            details={"user_id": str(user.id), "vault_id": str(vault.id)},
        )

    def login(self, username: str, password: str) -> Session:
        """
        Authenticate and open a Session.

        Returns:
            Session in AUTHENTICATED state. Close it (or use it as a context
            manager) to zeroize the key material.

        Raises:
            AuthenticationFailure: Unknown user, wrong password, missing vault
                                   or unreadable vault key (indistinguishable)
            IntegrityError: Stored password hash is malformed
        """
        attempt = LoginAttempt(username)
        self.last_attempt = attempt
        attempt.begin()

        passphrase = SecretBytes.from_str(password or "")
        try:
            session = self._authenticate(username, passphrase)
        except IntegrityError as e:
            attempt.fail()
            passphrase.wipe()
            self.audit.log_integrity_error("user", str(e), details={"username": username})
            raise
        except BaseException:
            attempt.fail()
            passphrase.wipe()
            raise

        attempt.succeed()
        logger.info("Login succeeded: %s", username)
        self.audit.log_event(
            event_type=EventType.AUTH_SUCCEEDED,
            severity=EventSeverity.INFO,
            message="Authentication succeeded",
            details={"username": username},
        )
        self.audit.log_event(
            event_type=EventType.SESSION_OPENED,
            severity=EventSeverity.INFO,
            message="Session opened",
            details={"username": username, "vault_id": str(session.vault_id)},
        )
        return session

    def _authenticate(self, username: str, passphrase: SecretBytes) -> Session:
        user = self.repos.users.find_by_username(username)
        if user is None:
            # Burn the same Argon2 cost so response time does not reveal the user
            self.hasher.verify(passphrase.view(), self._get_dummy_hash())
            self._reject(username, "unknown user")

        if not self.hasher.verify(passphrase.view(), user.password_hash):
            self._reject(username, "wrong password")

        vault = self.repos.vaults.find_by_user_id(user.id)
        if vault is None:
            self._reject(username, "vault not found")

        try:
            vault_key = self.vault_keys.unwrap(passphrase.view(), vault.vault_key_cipher)
        except AuthenticationFailure:
            self._reject(username, "vault key unwrap failed")

        return Session(
            user_id=user.id,
            username=user.username,
            vault_id=vault.id,
            vault_key=vault_key,
            passphrase=passphrase,
            audit=self.audit,
        )

    def _reject(self, username: str, reason: str) -> None:
        logger.info("Login failed for %s", username)
        self.audit.log_auth_failure(username, reason)
        raise AuthenticationFailure()

    def _get_dummy_hash(self) -> bytes:
        if self._dummy_hash is None:
            self._dummy_hash = self.hasher.hash(b"strongbox-unknown-user")
        return self._dummy_hash
