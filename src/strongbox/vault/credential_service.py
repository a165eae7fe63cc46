# Vault - Credential Management
#
# CRUD over credentials of the session's vault. Name, username and URL are
# plaintext metadata; password and notes go through FieldEncryptor and are
# stored as independent envelopes. Every operation on an existing record
# checks ownership first; a foreign or missing record is "record not
# available" either way.

import logging
import uuid
from typing import List, Optional

from ..core.audit_log import AuditLogger, EventSeverity, EventType, get_audit_logger
from ..core.exceptions import AuthorizationFailure, IntegrityError, ValidationError
from ..crypto.secret import SecretBytes, wipe
from ..db.models import Credential, validate_credential_name
from ..db.repositories import RepositoryFactory
from .field_encryption import FieldEncryptor
from .session import Session

logger = logging.getLogger(__name__)


class CredentialService:
    """
    Credential operations scoped to one authenticated Session.

    Args:
        repos: Repositories bound to one Database handle
        fields: Field encryptor
        audit: Audit logger (default: process-wide instance)
    """

    def __init__(
        self,
        repos: RepositoryFactory,
        fields: FieldEncryptor,
        audit: Optional[AuditLogger] = None,
    ):
        self.repos = repos
        self.fields = fields
        self.audit = audit or get_audit_logger()

    def create(
        self,
        session: Session,
        name: str,
        username: Optional[str] = None,
        url: Optional[str] = None,
        notes: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Credential:
        """
        Store a new credential in the session's vault.

        Returns:
            The persisted Credential (secret fields as ciphertext)

        Raises:
            ValidationError: Empty or overlong name, or a non-text secret field
            SessionClosedError: If the session has been closed
        """
        validate_credential_name(name)
        password_cipher = self._seal(session, password)
        notes_cipher = self._seal(session, notes)

        credential = Credential.new(
            vault_id=session.vault_id,
            name=name,
            username=username,
            url=url,
            notes_cipher=notes_cipher,
            password_cipher=password_cipher,
        )
        self.repos.credentials.create(credential)

        self.audit.log_vault_event(
            EventType.CREDENTIAL_CREATED,
            "credential created",
            details={"credential_id": str(credential.id), "vault_id": str(session.vault_id)},
        )
        return credential

    def update(
        self,
        session: Session,
        credential_id: uuid.UUID,
        name: Optional[str] = None,
        username: Optional[str] = None,
        url: Optional[str] = None,
        notes: Optional[str] = None,
        password: Optional[str] = None,
    ) -> Credential:
        """
        Change the supplied fields of a credential; others are left as stored.

        Only a supplied secret field is re-encrypted. The other field's
        ciphertext is written back byte for byte.

        Raises:
            AuthorizationFailure: Missing record or record of another vault
            ValidationError: Empty or overlong name, or a non-text secret field
        """
        credential = self._load_owned(session, credential_id)

        if name is not None:
            validate_credential_name(name)
            credential.name = name
        if username is not None:
            credential.username = username
        if url is not None:
            credential.url = url
        if notes is not None:
            credential.notes_cipher = self._seal(session, notes)
        if password is not None:
            credential.password_cipher = self._seal(session, password)

        self.repos.credentials.update(credential)
        self.audit.log_vault_event(
            EventType.CREDENTIAL_UPDATED,
            "credential updated",
            details={
                "credential_id": str(credential.id),
                "password_changed": password is not None,
                "notes_changed": notes is not None,
            },
        )
        return credential

    def delete(self, session: Session, credential_id: uuid.UUID) -> None:
        """
        Remove a credential.

        Deleting an id that does not exist is a no-op; deleting another
        vault's record raises AuthorizationFailure.
        """
        credential = self.repos.credentials.find_by_id(credential_id)
        if credential is None:
            logger.debug("Delete of unknown credential %s ignored", credential_id)
            return
        self._check_owned(session, credential)
        self.repos.credentials.delete(credential_id)
        self.audit.log_vault_event(
            EventType.CREDENTIAL_DELETED,
            "credential deleted",
            details={"credential_id": str(credential_id)},
        )

    def get(self, session: Session, credential_id: uuid.UUID) -> Credential:
        """Fetch one credential of the session's vault."""
        return self._load_owned(session, credential_id)

    def list(self, session: Session) -> List[Credential]:
        """All credentials of the session's vault, ordered by name."""
        return self.repos.credentials.find_all_by_vault_id(session.vault_id)

    def search(self, session: Session, query: str) -> List[Credential]:
        """Credentials whose name contains query, ordered by name."""
        return self.repos.credentials.search(session.vault_id, query)

    def reveal_password(self, session: Session, credential_id: uuid.UUID) -> Optional[str]:
        """Decrypt the password field. None when no password is stored.

        Raises:
            AuthorizationFailure: Missing record or record of another vault
            IntegrityError: Stored plaintext is not valid UTF-8
        """
        credential = self._load_owned(session, credential_id)
        return self._reveal(session, credential, "password", credential.password_cipher)

    def reveal_notes(self, session: Session, credential_id: uuid.UUID) -> Optional[str]:
        """Decrypt the notes field. None when no notes are stored."""
        credential = self._load_owned(session, credential_id)
        return self._reveal(session, credential, "notes", credential.notes_cipher)

    # ------------------------------------------------------------------

    def _seal(self, session: Session, value: Optional[str]) -> Optional[bytes]:
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValidationError("secret fields must be text")
        with SecretBytes.from_str(value) as plaintext:
            return self.fields.encrypt_field(session, plaintext.view())

    def _reveal(
        self,
        session: Session,
        credential: Credential,
        field: str,
        field_cipher: Optional[bytes],
    ) -> Optional[str]:
        if field_cipher is None:
            return None
        plaintext = self.fields.decrypt_field(session, field_cipher)
        try:
            value = plaintext.decode("utf-8")
        except UnicodeDecodeError:
            logger.error("Credential %s %s is not valid UTF-8", credential.id, field)
            raise IntegrityError("stored field is not valid text") from None
        finally:
            wipe(plaintext)
        self.audit.log_vault_event(
            EventType.CREDENTIAL_REVEALED,
            f"{field} revealed",
            details={"credential_id": str(credential.id), "field": field},
        )
        return value

    def _load_owned(self, session: Session, credential_id: uuid.UUID) -> Credential:
        credential = self.repos.credentials.find_by_id(credential_id)
        return self._check_owned(session, credential)

    def _check_owned(self, session: Session, credential: Optional[Credential]) -> Credential:
        try:
            return self.fields.ensure_owned(session, credential)
        except AuthorizationFailure:
            self.audit.log_event(
                event_type=EventType.ACCESS_DENIED,
                severity=EventSeverity.INVESTIGATE,
                message="Credential not available to this vault",
                details={
                    "vault_id": str(session.vault_id),
                    "credential_id": str(credential.id) if credential else None,
                },
            )
            raise
