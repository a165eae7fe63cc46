"""Envelope Cipher - self-describing authenticated encryption.

Passphrase envelopes follow the age scrypt recipient idea: a memory-hard
KDF with a per-envelope salt turns the passphrase into a file key, and an
AEAD with a fresh nonce seals the payload. Everything ``open`` needs rides
in the header, and the header is authenticated as associated data.

Envelope layout (version 1):

    magic(4) "SBXE" | version(1) | kdf(1) | aead(1) | salt_len(1)
    | kdf_params(3) | salt(salt_len) | nonce(12) | ciphertext+tag

    kdf 1 = scrypt over a passphrase, params = log2(N), r, p
    kdf 2 = HKDF-SHA256 over high-entropy key material, params = 0, 0, 0
    aead 1 = ChaCha20-Poly1305, aead 2 = AES-256-GCM

Every failure to open (wrong key, tampered bytes, malformed or unknown
header) surfaces as the same :class:`UnsealError`.
"""

import logging
import os
import struct
from dataclasses import dataclass
from typing import Callable, Dict, Tuple, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from ..core.exceptions import UnsealError, ValidationError
from .secret import BytesLike

logger = logging.getLogger(__name__)

MAGIC = b"SBXE"
FORMAT_VERSION = 1

KDF_SCRYPT = 1
KDF_HKDF = 2

AEAD_CHACHA20 = 1
AEAD_AESGCM = 2

AEAD_NAMES = {"chacha20": AEAD_CHACHA20, "aesgcm": AEAD_AESGCM}
_AEAD_CLASSES = {AEAD_CHACHA20: ChaCha20Poly1305, AEAD_AESGCM: AESGCM}

KEY_LENGTH = 32    # 256-bit AEAD key
SALT_LENGTH = 16   # age uses a 16-byte scrypt salt
NONCE_LENGTH = 12  # 96-bit nonce for both AEADs
TAG_LENGTH = 16

# Fixed part: magic + version + kdf + aead + salt_len + 3 param bytes
_FIXED = struct.Struct("!4sBBBB3s")

# Bounds accepted when opening; a header may not ask for more than this
SCRYPT_LOG2_N_RANGE = (10, 22)
SCRYPT_R_RANGE = (1, 32)
SCRYPT_P_RANGE = (1, 16)
# Ceiling on 128 * r * N * p, the working memory a header may demand
SCRYPT_MAX_MEMORY = 1 << 30  # 1 GiB

_HKDF_INFO = b"strongbox-envelope-v1"

Secret = Union[str, BytesLike]


@dataclass(frozen=True)
class EnvelopeHeader:
    """Parsed, not yet authenticated, envelope header."""
    version: int
    kdf: int
    aead: int
    kdf_params: Tuple[int, int, int]
    salt: bytes
    nonce: bytes
    raw: bytes          # exact header bytes (AEAD associated data)
    body: bytes         # ciphertext || tag


def _parse_v1(blob: bytes) -> EnvelopeHeader:
    magic, version, kdf, aead, salt_len, params = _FIXED.unpack_from(blob)
    if kdf not in (KDF_SCRYPT, KDF_HKDF):
        raise ValueError(f"unknown kdf id {kdf}")
    if aead not in _AEAD_CLASSES:
        raise ValueError(f"unknown aead id {aead}")
    if salt_len < 8:
        raise ValueError("salt too short")
    header_len = _FIXED.size + salt_len + NONCE_LENGTH
    if len(blob) < header_len + TAG_LENGTH:
        raise ValueError("envelope truncated")
    kdf_params = tuple(params)
    if kdf == KDF_SCRYPT:
        log2_n, r, p = kdf_params
        if not (SCRYPT_LOG2_N_RANGE[0] <= log2_n <= SCRYPT_LOG2_N_RANGE[1]
                and SCRYPT_R_RANGE[0] <= r <= SCRYPT_R_RANGE[1]
                and SCRYPT_P_RANGE[0] <= p <= SCRYPT_P_RANGE[1]):
            raise ValueError("scrypt parameters out of range")
        if scrypt_memory(log2_n, r, p) > SCRYPT_MAX_MEMORY:
            raise ValueError("scrypt cost exceeds memory ceiling")
    elif kdf_params != (0, 0, 0):
        raise ValueError("unexpected hkdf parameters")
    salt_end = _FIXED.size + salt_len
    return EnvelopeHeader(
        version=version,
        kdf=kdf,
        aead=aead,
        kdf_params=kdf_params,
        salt=blob[_FIXED.size:salt_end],
        nonce=blob[salt_end:header_len],
        raw=blob[:header_len],
        body=blob[header_len:],
    )


def scrypt_memory(log2_n: int, r: int, p: int) -> int:
    """Bytes of working memory scrypt needs for these parameters."""
    return 128 * r * (2 ** log2_n) * p


# Older envelope versions must stay readable; add a parser, never replace one.
_PARSERS: Dict[int, Callable[[bytes], EnvelopeHeader]] = {
    1: _parse_v1,
}


def parse_envelope(blob: BytesLike) -> EnvelopeHeader:
    """Parse an envelope header.

    Raises:
        UnsealError: If the blob is not a well-formed envelope of a known version.
    """
    blob = bytes(blob)
    try:
        if len(blob) < _FIXED.size or blob[:4] != MAGIC:
            raise ValueError("bad magic")
        parser = _PARSERS.get(blob[4])
        if parser is None:
            raise ValueError(f"unsupported envelope version {blob[4]}")
        return parser(blob)
    except (ValueError, struct.error) as e:
        logger.debug("Envelope rejected: %s", e)
        raise UnsealError() from None


class EnvelopeCipher:
    """
    Seal/open byte payloads under a passphrase or under raw key material.

    Write parameters (scrypt cost, AEAD choice) only affect new envelopes;
    open() always honours what the envelope declares.

    Args:
        scrypt_log2_n: log2 of the scrypt CPU/memory cost N (age default: 18)
        scrypt_r: scrypt block size
        scrypt_p: scrypt parallelism
        aead: "chacha20" (default, as age) or "aesgcm"
    """

    def __init__(
        self,
        scrypt_log2_n: int = 18,
        scrypt_r: int = 8,
        scrypt_p: int = 1,
        aead: str = "chacha20",
    ):
        if not SCRYPT_LOG2_N_RANGE[0] <= scrypt_log2_n <= SCRYPT_LOG2_N_RANGE[1]:
            raise ValidationError(
                f"scrypt log2(N) must be between {SCRYPT_LOG2_N_RANGE[0]} and {SCRYPT_LOG2_N_RANGE[1]}"
            )
        if not SCRYPT_R_RANGE[0] <= scrypt_r <= SCRYPT_R_RANGE[1]:
            raise ValidationError("scrypt r out of range")
        if not SCRYPT_P_RANGE[0] <= scrypt_p <= SCRYPT_P_RANGE[1]:
            raise ValidationError("scrypt p out of range")
        if scrypt_memory(scrypt_log2_n, scrypt_r, scrypt_p) > SCRYPT_MAX_MEMORY:
            raise ValidationError("scrypt parameters exceed the memory ceiling")
        if aead not in AEAD_NAMES:
            raise ValidationError(f"Unsupported AEAD: {aead}")
        self.scrypt_params = (scrypt_log2_n, scrypt_r, scrypt_p)
        self.aead_id = AEAD_NAMES[aead]

    # ------------------------------------------------------------------
    # Passphrase envelopes
    # ------------------------------------------------------------------

    def seal(self, passphrase: Secret, plaintext: BytesLike) -> bytes:
        """Encrypt plaintext under a passphrase (fresh salt and nonce every call)."""
        return self._seal(KDF_SCRYPT, self.scrypt_params, _as_bytes(passphrase), plaintext)

    def open(self, passphrase: Secret, ciphertext: BytesLike) -> bytes:
        """
        Decrypt a passphrase envelope.

        Raises:
            UnsealError: Wrong passphrase, tampered data or malformed envelope
        """
        return self._open(KDF_SCRYPT, _as_bytes(passphrase), ciphertext)

    # ------------------------------------------------------------------
    # Key envelopes (high-entropy key material, no stretching)
    # ------------------------------------------------------------------

    def seal_with_key(self, key: BytesLike, plaintext: BytesLike) -> bytes:
        """Encrypt plaintext under 256-bit key material."""
        if len(key) < KEY_LENGTH:
            raise ValidationError("key material must be at least 32 bytes")
        return self._seal(KDF_HKDF, (0, 0, 0), key, plaintext)

    def open_with_key(self, key: BytesLike, ciphertext: BytesLike) -> bytes:
        """
        Decrypt a key envelope.

        Raises:
            UnsealError: Wrong key, tampered data or malformed envelope
        """
        return self._open(KDF_HKDF, key, ciphertext)

    @staticmethod
    def peek_kdf(ciphertext: BytesLike) -> int:
        """Return the KDF id an envelope declares, without decrypting it."""
        return parse_envelope(ciphertext).kdf

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _seal(self, kdf: int, params: Tuple[int, int, int], secret: BytesLike, plaintext: BytesLike) -> bytes:
        salt = os.urandom(SALT_LENGTH)
        nonce = os.urandom(NONCE_LENGTH)
        header = _FIXED.pack(MAGIC, FORMAT_VERSION, kdf, self.aead_id, SALT_LENGTH, bytes(params))
        header += salt + nonce
        key = _derive(kdf, params, secret, salt)
        cipher = _AEAD_CLASSES[self.aead_id](key)
        return header + cipher.encrypt(nonce, plaintext, header)

    @staticmethod
    def _open(expected_kdf: int, secret: BytesLike, ciphertext: BytesLike) -> bytes:
        header = parse_envelope(ciphertext)
        if header.kdf != expected_kdf:
            logger.debug("Envelope kdf %d does not match entry point", header.kdf)
            raise UnsealError()
        try:
            key = _derive(header.kdf, header.kdf_params, secret, header.salt)
            cipher = _AEAD_CLASSES[header.aead](key)
            return cipher.decrypt(header.nonce, header.body, header.raw)
        except (InvalidTag, ValueError, MemoryError):
            raise UnsealError() from None


def _derive(kdf: int, params: Tuple[int, int, int], secret: BytesLike, salt: bytes) -> bytes:
    if kdf == KDF_SCRYPT:
        log2_n, r, p = params
        return Scrypt(salt=salt, length=KEY_LENGTH, n=2 ** log2_n, r=r, p=p).derive(secret)
    return HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        info=_HKDF_INFO,
    ).derive(secret)


def _as_bytes(passphrase: Secret) -> BytesLike:
    if isinstance(passphrase, str):
        return passphrase.encode("utf-8")
    return passphrase
