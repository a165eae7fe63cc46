# Crypto - Vault Key Envelope
#
# One random 256-bit key per vault, wrapped under the owner's login password.
# Only the wrapped form (VaultKeyCipher) is ever persisted.

import logging
import secrets
from typing import Tuple

from ..core.exceptions import AuthenticationFailure, UnsealError
from .envelope import EnvelopeCipher, Secret
from .secret import BytesLike, SecretBytes

logger = logging.getLogger(__name__)

VAULT_KEY_LENGTH = 32  # 256 bits


class VaultKeyEnvelope:
    """Create and unwrap per-vault keys."""

    def __init__(self, cipher: EnvelopeCipher):
        self.cipher = cipher

    def create(self, password: Secret) -> Tuple[SecretBytes, bytes]:
        """
        Generate a fresh vault key and wrap it under the password.

        Returns:
            (vault_key, vault_key_cipher). The caller owns vault_key and must
            wipe() it once it is no longer needed.
        """
        key = SecretBytes(secrets.token_bytes(VAULT_KEY_LENGTH))
        try:
            wrapped = self.cipher.seal(password, key.view())
        except Exception:
            key.wipe()
            raise
        return key, wrapped

    def unwrap(self, password: Secret, vault_key_cipher: BytesLike) -> SecretBytes:
        """
        Recover the vault key.

        Raises:
            AuthenticationFailure: Wrong password or corrupt envelope (indistinguishable)
        """
        try:
            raw = self.cipher.open(password, vault_key_cipher)
        except UnsealError:
            raise AuthenticationFailure() from None
        key = SecretBytes(raw)
        if len(key) != VAULT_KEY_LENGTH:
            key.wipe()
            logger.warning("Unwrapped vault key has unexpected length")
            raise AuthenticationFailure()
        return key
