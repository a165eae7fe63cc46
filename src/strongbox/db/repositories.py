"""
Data access objects (repositories) for Strongbox entities.

Provides storage operations for:
- Users
- Vaults
- Credentials

Every repository receives the Database handle it works on. Secret columns
are treated as opaque bytes; nothing here decrypts or logs them. A stored
row whose id or timestamp cannot be parsed raises IntegrityError.
"""

import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from ..core.exceptions import IntegrityError, ValidationError
from .connection import Database
from .models import Credential, User, Vault, utcnow

logger = logging.getLogger(__name__)


def _ts(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat()


def _parse_ts(value: str, column: str) -> datetime:
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        raise IntegrityError(f"Unparseable timestamp in column '{column}'") from None
    if parsed.tzinfo is None:
        raise IntegrityError(f"Timestamp without offset in column '{column}'")
    return parsed.astimezone(timezone.utc)


def _parse_id(value: bytes, column: str) -> uuid.UUID:
    try:
        return uuid.UUID(bytes=bytes(value))
    except (TypeError, ValueError):
        raise IntegrityError(f"Malformed identifier in column '{column}'") from None


def _blob(value) -> Optional[bytes]:
    return bytes(value) if value is not None else None


class UserRepository:
    """User data access object."""

    def __init__(self, db: Database):
        """Initialize with database instance."""
        self.db = db

    def create(self, user: User) -> None:
        """
        Insert a user.

        Raises:
            ValidationError: If the username is already taken
        """
        try:
            self.db.execute(
                """
                INSERT INTO user (id, username, password_hash, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    user.id.bytes,
                    user.username,
                    user.password_hash,
                    _ts(user.created_at),
                    _ts(user.updated_at),
                ),
            )
        except sqlite3.IntegrityError:
            raise ValidationError("Username is already in use") from None
        logger.info(f"User created: {user.id} ({user.username})")

    def find_by_username(self, username: str) -> Optional[User]:
        """Get user by username."""
        row = self.db.fetchone(
            "SELECT id, username, password_hash, created_at, updated_at FROM user WHERE username = ?",
            (username,),
        )
        return self._row_to_user(row) if row else None

    def find_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Get user by ID."""
        row = self.db.fetchone(
            "SELECT id, username, password_hash, created_at, updated_at FROM user WHERE id = ?",
            (user_id.bytes,),
        )
        return self._row_to_user(row) if row else None

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(
            id=_parse_id(row["id"], "user.id"),
            username=row["username"],
            password_hash=bytes(row["password_hash"]),
            created_at=_parse_ts(row["created_at"], "user.created_at"),
            updated_at=_parse_ts(row["updated_at"], "user.updated_at"),
        )


class VaultRepository:
    """Vault data access object."""

    def __init__(self, db: Database):
        """Initialize with database instance."""
        self.db = db

    def create(self, vault: Vault) -> None:
        """Insert a vault (the key column holds the wrapped key only)."""
        self.db.execute(
            """
            INSERT INTO vault (id, user_id, vault_key_cipher, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                vault.id.bytes,
                vault.user_id.bytes,
                vault.vault_key_cipher,
                _ts(vault.created_at),
                _ts(vault.updated_at),
            ),
        )
        logger.info(f"Vault created: {vault.id} (user {vault.user_id})")

    def find_by_user_id(self, user_id: uuid.UUID) -> Optional[Vault]:
        """Get the vault owned by a user."""
        row = self.db.fetchone(
            "SELECT id, user_id, vault_key_cipher, created_at, updated_at FROM vault WHERE user_id = ?",
            (user_id.bytes,),
        )
        if not row:
            return None
        return Vault(
            id=_parse_id(row["id"], "vault.id"),
            user_id=_parse_id(row["user_id"], "vault.user_id"),
            vault_key_cipher=bytes(row["vault_key_cipher"]),
            created_at=_parse_ts(row["created_at"], "vault.created_at"),
            updated_at=_parse_ts(row["updated_at"], "vault.updated_at"),
        )


_CREDENTIAL_COLUMNS = (
    "id, vault_id, name, username, url, notes, password_cipher, created_at, updated_at"
)


class CredentialRepository:
    """Credential data access object."""

    def __init__(self, db: Database):
        """Initialize with database instance."""
        self.db = db

    def create(self, credential: Credential) -> None:
        """Insert a credential with its (already encrypted) secret fields."""
        self.db.execute(
            f"INSERT INTO credential ({_CREDENTIAL_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                credential.id.bytes,
                credential.vault_id.bytes,
                credential.name,
                credential.username,
                credential.url,
                credential.notes_cipher,
                credential.password_cipher,
                _ts(credential.created_at),
                _ts(credential.updated_at),
            ),
        )
        logger.info(f"Credential created: {credential.id} (vault {credential.vault_id})")

    def update(self, credential: Credential) -> bool:
        """
        Persist every mutable column of a credential and bump updated_at.

        Returns:
            True if a row was updated
        """
        credential.updated_at = utcnow()
        rows = self.db.execute(
            """
            UPDATE credential
               SET name = ?, username = ?, url = ?, notes = ?, password_cipher = ?, updated_at = ?
             WHERE id = ?
            """,
            (
                credential.name,
                credential.username,
                credential.url,
                credential.notes_cipher,
                credential.password_cipher,
                _ts(credential.updated_at),
                credential.id.bytes,
            ),
        )
        if rows:
            logger.info(f"Credential updated: {credential.id}")
        else:
            logger.warning(f"Credential update matched no row: {credential.id}")
        return rows > 0

    def delete(self, credential_id: uuid.UUID) -> bool:
        """Delete a credential. Returns True if a row was removed."""
        rows = self.db.execute("DELETE FROM credential WHERE id = ?", (credential_id.bytes,))
        if rows:
            logger.info(f"Credential deleted: {credential_id}")
        return rows > 0

    def find_by_id(self, credential_id: uuid.UUID) -> Optional[Credential]:
        """Get credential by ID."""
        row = self.db.fetchone(
            f"SELECT {_CREDENTIAL_COLUMNS} FROM credential WHERE id = ?",
            (credential_id.bytes,),
        )
        return self._row_to_credential(row) if row else None

    def find_all_by_vault_id(self, vault_id: uuid.UUID) -> List[Credential]:
        """List every credential in a vault."""
        rows = self.db.fetchall(
            f"SELECT {_CREDENTIAL_COLUMNS} FROM credential WHERE vault_id = ? ORDER BY name ASC",
            (vault_id.bytes,),
        )
        logger.debug(f"Credentials listed for vault {vault_id}: {len(rows)}")
        return [self._row_to_credential(r) for r in rows]

    def search(self, vault_id: uuid.UUID, query: str) -> List[Credential]:
        """
        Name substring search within one vault, ordered by name.

        LIKE wildcards in the query are matched literally.
        """
        escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        rows = self.db.fetchall(
            f"""
            SELECT {_CREDENTIAL_COLUMNS} FROM credential
             WHERE vault_id = ? AND name LIKE ? ESCAPE '\\'
             ORDER BY name ASC
            """,
            (vault_id.bytes, f"%{escaped}%"),
        )
        return [self._row_to_credential(r) for r in rows]

    @staticmethod
    def _row_to_credential(row: sqlite3.Row) -> Credential:
        return Credential(
            id=_parse_id(row["id"], "credential.id"),
            vault_id=_parse_id(row["vault_id"], "credential.vault_id"),
            name=row["name"],
            username=row["username"],
            url=row["url"],
            notes_cipher=_blob(row["notes"]),
            password_cipher=_blob(row["password_cipher"]),
            created_at=_parse_ts(row["created_at"], "credential.created_at"),
            updated_at=_parse_ts(row["updated_at"], "credential.updated_at"),
        )


class RepositoryFactory:
    """Build every repository over one Database handle."""

    def __init__(self, db: Database):
        self.db = db
        self.users = UserRepository(db)
        self.vaults = VaultRepository(db)
        self.credentials = CredentialRepository(db)
