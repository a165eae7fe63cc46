# Crypto Module - Primitives for the credential vault
#
# Argon2id password verification hashes, self-describing passphrase/key
# envelopes (scrypt or HKDF + AEAD), vault key wrapping, and zeroizable
# secret buffers.

from .envelope import EnvelopeCipher, EnvelopeHeader, parse_envelope
from .password_hasher import PasswordHasher
from .secret import SecretBytes, wipe
from .vault_key import VAULT_KEY_LENGTH, VaultKeyEnvelope

__all__ = [
    "EnvelopeCipher",
    "EnvelopeHeader",
    "parse_envelope",
    "PasswordHasher",
    "SecretBytes",
    "wipe",
    "VAULT_KEY_LENGTH",
    "VaultKeyEnvelope",
]
