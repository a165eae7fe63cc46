# Strongbox - Application Wiring
#
# Builds every collaborator from one StrongboxConfig: the Database handle,
# the audit logger, the crypto primitives and the services. Front ends
# (the CLI, tests) talk to this object instead of assembling pieces.

import logging
from typing import Optional

from .config import StrongboxConfig
from .core.audit_log import AuditLogger, EventSeverity, EventType
from .crypto.envelope import EnvelopeCipher
from .crypto.password_hasher import PasswordHasher
from .crypto.vault_key import VaultKeyEnvelope
from .db.connection import Database
from .db.migrations import initialize_schema
from .db.repositories import RepositoryFactory
from .vault.auth_service import AuthService
from .vault.credential_service import CredentialService
from .vault.field_encryption import FieldEncryptor
from .vault.session import Session

logger = logging.getLogger(__name__)


class Strongbox:
    """
    Opened credential vault store.

    Usage:
        with Strongbox(StrongboxConfig.from_env()) as box:
            box.auth.register("alice", "S3cret!")
            with box.login("alice", "S3cret!") as session:
                box.credentials.create(session, "GitHub", password="hunter2")
    """

    def __init__(self, config: StrongboxConfig, audit: Optional[AuditLogger] = None):
        self.config = config
        self._owns_audit = audit is None
        self.audit = audit or AuditLogger(log_dir=config.log_dir)

        self.db = Database(config.db_path).open()
        initialize_schema(self.db)
        self.repos = RepositoryFactory(self.db)

        self.cipher = EnvelopeCipher(
            scrypt_log2_n=config.scrypt_log2_n,
            scrypt_r=config.scrypt_r,
            scrypt_p=config.scrypt_p,
            aead=config.aead,
        )
        self.hasher = PasswordHasher(
            time_cost=config.argon2_time_cost,
            memory_cost=config.argon2_memory_cost,
            parallelism=config.argon2_parallelism,
        )
        self.vault_keys = VaultKeyEnvelope(self.cipher)
        self.fields = FieldEncryptor(self.cipher, config.field_key_mode)

        self.auth = AuthService(self.repos, self.hasher, self.vault_keys, audit=self.audit)
        self.credentials = CredentialService(self.repos, self.fields, audit=self.audit)
        logger.info("Strongbox opened at %s", config.db_path)

    def register(self, username: str, password: str) -> None:
        self.auth.register(username, password)

    def login(self, username: str, password: str) -> Session:
        return self.auth.login(username, password)

    def close(self) -> None:
        self.db.close()
        self.audit.log_event(
            event_type=EventType.SYSTEM_STOP,
            severity=EventSeverity.INFO,
            message="Strongbox closed",
        )
        if self._owns_audit:
            self.audit.close()

    def __enter__(self) -> "Strongbox":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
