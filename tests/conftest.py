"""
Shared pytest fixtures for the Strongbox test suite.

Autouse fixtures below isolate tests from live application data:
  - Audit logger -> temp directory (no test events in ./audit_logs)

KDF costs are lowered everywhere (scrypt N=2^10, Argon2id t=1/m=8KiB) so
the suite runs in seconds; envelopes and hashes remain fully valid.
"""

import json
import uuid

import pytest

FAST_SCRYPT_LOG2_N = 10


@pytest.fixture(autouse=True)
def _isolate_audit_logs(tmp_path, monkeypatch):
    """Redirect the global AuditLogger to a temp directory for every test.

    Without this, any code path that falls back to ``get_audit_logger()``
    writes into the real ``./audit_logs/`` directory.
    """
    import strongbox.core.audit_log as audit_mod

    old_logger = audit_mod._audit_logger
    audit_mod._audit_logger = None

    orig_init = audit_mod.AuditLogger.__init__

    def patched_init(self, log_dir=None):
        orig_init(self, log_dir=log_dir or tmp_path / "audit_logs")

    monkeypatch.setattr(audit_mod.AuditLogger, "__init__", patched_init)

    yield

    if audit_mod._audit_logger is not None:
        audit_mod._audit_logger.close()
    audit_mod._audit_logger = old_logger


# ── Building blocks ──────────────────────────────────────────────────


@pytest.fixture
def audit(tmp_path):
    from strongbox.core.audit_log import AuditLogger

    logger = AuditLogger(log_dir=tmp_path / "audit")
    yield logger
    logger.close()


@pytest.fixture
def audit_events(audit):
    """Callable returning every event written so far as parsed dicts."""

    def read(event_type=None):
        if not audit.log_file.exists():
            return []
        events = [
            json.loads(line)
            for line in audit.log_file.read_text(encoding="utf-8").splitlines()
            if line.strip()
        ]
        if event_type is not None:
            events = [e for e in events if e["event_type"] == event_type.value]
        return events

    return read


@pytest.fixture
def cipher():
    from strongbox.crypto.envelope import EnvelopeCipher

    return EnvelopeCipher(scrypt_log2_n=FAST_SCRYPT_LOG2_N)


@pytest.fixture
def hasher():
    from strongbox.crypto.password_hasher import PasswordHasher

    return PasswordHasher(time_cost=1, memory_cost=8, parallelism=1)


@pytest.fixture
def vault_keys(cipher):
    from strongbox.crypto.vault_key import VaultKeyEnvelope

    return VaultKeyEnvelope(cipher)


@pytest.fixture
def db():
    from strongbox.db.connection import Database
    from strongbox.db.migrations import initialize_schema

    database = Database().open()
    initialize_schema(database)
    yield database
    database.close()


@pytest.fixture
def repos(db):
    from strongbox.db.repositories import RepositoryFactory

    return RepositoryFactory(db)


# ── Services ─────────────────────────────────────────────────────────


@pytest.fixture
def auth(repos, hasher, vault_keys, audit):
    from strongbox.vault.auth_service import AuthService

    return AuthService(repos, hasher, vault_keys, audit=audit)


@pytest.fixture
def fields(cipher):
    from strongbox.vault.field_encryption import FieldEncryptor

    return FieldEncryptor(cipher)


@pytest.fixture
def credentials(repos, fields, audit):
    from strongbox.vault.credential_service import CredentialService

    return CredentialService(repos, fields, audit=audit)


@pytest.fixture
def alice(auth):
    """Registered user 'alice' with an open session (closed on teardown)."""
    auth.register("alice", "S3cret!")
    session = auth.login("alice", "S3cret!")
    yield session
    session.close()


@pytest.fixture
def bob(auth):
    """A second, unrelated user and session."""
    auth.register("bob", "hunter22")
    session = auth.login("bob", "hunter22")
    yield session
    session.close()


@pytest.fixture
def make_session():
    """Factory for standalone sessions with known secret bytes."""
    from strongbox.crypto.secret import SecretBytes
    from strongbox.vault.session import Session

    created = []

    def make(vault_key=b"\x11" * 32, passphrase="S3cret!"):
        session = Session(
            user_id=uuid.uuid4(),
            username="alice",
            vault_id=uuid.uuid4(),
            vault_key=SecretBytes(vault_key),
            passphrase=SecretBytes.from_str(passphrase),
        )
        created.append(session)
        return session

    yield make
    for session in created:
        session.close()
