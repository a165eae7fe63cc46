# Vault - Field Encryption
#
# Password and notes are sealed one field at a time, each into its own
# envelope, so updating one field never touches the other.
#
# Key source for new ciphertexts:
#   vault_key  (default) HKDF-SHA256(vault key, info="strongbox-field-key-v1"),
#              sealed as a key envelope (kdf 2)
#   passphrase the login password through scrypt (kdf 1), as older
#              databases were written
# Decryption follows whatever the stored envelope declares, so both kinds
# stay readable whichever mode is configured.

import logging
from enum import Enum
from typing import Optional, Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from ..core.exceptions import AuthorizationFailure, ValidationError
from ..crypto.envelope import KDF_SCRYPT, KEY_LENGTH, EnvelopeCipher
from ..crypto.secret import BytesLike, SecretBytes
from ..db.models import Credential
from .session import Session

logger = logging.getLogger(__name__)

FIELD_KEY_INFO = b"strongbox-field-key-v1"


class FieldKeyMode(str, Enum):
    """Which secret new field ciphertexts are sealed under."""
    VAULT_KEY = "vault_key"
    PASSPHRASE = "passphrase"


def derive_field_key(vault_key: BytesLike) -> SecretBytes:
    """Derive the field-encryption key from the unwrapped vault key."""
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=None,
        info=FIELD_KEY_INFO,
    )
    return SecretBytes(hkdf.derive(vault_key))


class FieldEncryptor:
    """
    Encrypt/decrypt individual credential fields with a live Session.

    Args:
        cipher: Envelope cipher used for every field
        mode: Key source for new ciphertexts (see FieldKeyMode)
    """

    def __init__(
        self,
        cipher: EnvelopeCipher,
        mode: Union[FieldKeyMode, str] = FieldKeyMode.VAULT_KEY,
    ):
        try:
            self.mode = FieldKeyMode(mode)
        except ValueError:
            raise ValidationError(f"Unsupported field key mode: {mode}") from None
        self.cipher = cipher

    def encrypt_field(self, session: Session, plaintext: BytesLike) -> bytes:
        """
        Seal one field value.

        Raises:
            SessionClosedError: If the session has been closed
        """
        with session.use() as secrets:
            if self.mode is FieldKeyMode.PASSPHRASE:
                return self.cipher.seal(secrets.passphrase, plaintext)
            with derive_field_key(secrets.vault_key) as field_key:
                return self.cipher.seal_with_key(field_key.view(), plaintext)

    def decrypt_field(self, session: Session, field_cipher: BytesLike) -> bytearray:
        """
        Open one field value.

        Returns:
            Plaintext in a mutable buffer. Callers wipe it (crypto.secret.wipe)
            once displayed.

        Raises:
            UnsealError: Wrong vault, tampered or malformed ciphertext
            SessionClosedError: If the session has been closed
        """
        with session.use() as secrets:
            kdf = EnvelopeCipher.peek_kdf(field_cipher)
            if kdf == KDF_SCRYPT:
                plaintext = self.cipher.open(secrets.passphrase, field_cipher)
            else:
                with derive_field_key(secrets.vault_key) as field_key:
                    plaintext = self.cipher.open_with_key(field_key.view(), field_cipher)
        return bytearray(plaintext)

    @staticmethod
    def ensure_owned(session: Session, credential: Optional[Credential]) -> Credential:
        """
        Check a credential belongs to the session's vault.

        Runs on plaintext metadata only, before any cryptographic work.

        Raises:
            AuthorizationFailure: Missing record or record of another vault
                                  (indistinguishable)
        """
        if credential is None or credential.vault_id != session.vault_id:
            logger.info("Credential access denied for vault %s", session.vault_id)
            raise AuthorizationFailure()
        return credential
