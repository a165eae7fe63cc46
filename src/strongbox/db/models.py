"""
Domain records for Strongbox.

- User: login identity and Argon2id password hash
- Vault: one per user, holds the wrapped vault key
- Credential: one stored login; password and notes are ciphertext only

Constructors (`new`) validate structure and stamp ids/timestamps;
repositories rebuild persisted rows through the plain dataclass init.
"""

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from ..core.exceptions import ValidationError

USERNAME_MIN = 3
USERNAME_MAX = 32
CREDENTIAL_NAME_MAX = 64

_USERNAME_RE = re.compile(r"^[a-zA-Z0-9_.-]+$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_username(username: str) -> None:
    if not username or not username.strip():
        raise ValidationError("Username cannot be empty")
    if not USERNAME_MIN <= len(username) <= USERNAME_MAX:
        raise ValidationError(
            f"Username must be between {USERNAME_MIN} and {USERNAME_MAX} characters"
        )
    if not _USERNAME_RE.match(username):
        raise ValidationError("Username contains invalid characters")


def validate_credential_name(name: str) -> None:
    if not name or not name.strip():
        raise ValidationError("Credential name cannot be empty")
    if len(name) > CREDENTIAL_NAME_MAX:
        raise ValidationError(
            f"Credential name cannot exceed {CREDENTIAL_NAME_MAX} characters"
        )


def _require_id(value: uuid.UUID, what: str) -> None:
    if value is None or value.int == 0:
        raise ValidationError(f"{what} cannot be nil")


@dataclass
class User:
    """
    Attributes:
        id: UUID primary key
        username: Unique login name
        password_hash: Argon2id PHC string (bytes)
    """
    id: uuid.UUID
    username: str
    password_hash: bytes
    created_at: datetime
    updated_at: datetime

    @classmethod
    def new(cls, username: str, password_hash: bytes) -> "User":
        validate_username(username)
        if not password_hash:
            raise ValidationError("Password hash cannot be empty")
        now = utcnow()
        return cls(uuid.uuid4(), username, password_hash, now, now)


@dataclass
class Vault:
    """
    Attributes:
        id: UUID primary key
        user_id: Owning user
        vault_key_cipher: Vault key sealed under the owner's password
    """
    id: uuid.UUID
    user_id: uuid.UUID
    vault_key_cipher: bytes
    created_at: datetime
    updated_at: datetime

    @classmethod
    def new(cls, user_id: uuid.UUID, vault_key_cipher: bytes) -> "Vault":
        _require_id(user_id, "User id")
        if not vault_key_cipher:
            raise ValidationError("Vault key cipher cannot be empty")
        now = utcnow()
        return cls(uuid.uuid4(), user_id, vault_key_cipher, now, now)


@dataclass
class Credential:
    """
    Attributes:
        id: UUID primary key
        vault_id: Owning vault (ownership is checked against the session)
        name: Display name (plaintext metadata)
        username: Optional login name (plaintext metadata)
        url: Optional site URL (plaintext metadata)
        notes_cipher: Encrypted notes, None when not set
        password_cipher: Encrypted password, None when not set
    """
    id: uuid.UUID
    vault_id: uuid.UUID
    name: str
    username: Optional[str] = None
    url: Optional[str] = None
    notes_cipher: Optional[bytes] = None
    password_cipher: Optional[bytes] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def new(
        cls,
        vault_id: uuid.UUID,
        name: str,
        username: Optional[str] = None,
        url: Optional[str] = None,
        notes_cipher: Optional[bytes] = None,
        password_cipher: Optional[bytes] = None,
    ) -> "Credential":
        _require_id(vault_id, "Vault id")
        validate_credential_name(name)
        now = utcnow()
        return cls(
            id=uuid.uuid4(),
            vault_id=vault_id,
            name=name,
            username=username,
            url=url,
            notes_cipher=notes_cipher,
            password_cipher=password_cipher,
            created_at=now,
            updated_at=now,
        )

    def __repr__(self) -> str:
        # Never print ciphertext
        return (
            f"Credential(id={self.id}, vault_id={self.vault_id}, name={self.name!r}, "
            f"username={self.username!r}, url={self.url!r}, "
            f"has_password={self.password_cipher is not None}, "
            f"has_notes={self.notes_cipher is not None})"
        )
