# Crypto - Password Hasher
#
# Login password -> self-describing Argon2id verification hash (PHC string).
# The hash is one-way; it only answers "is this the password?".

import logging
from typing import Optional

from argon2 import PasswordHasher as Argon2Hasher, Type
from argon2.exceptions import (
    HashingError,
    InvalidHashError,
    VerificationError,
    VerifyMismatchError,
)

from ..core.exceptions import CryptoError, IntegrityError
from .secret import BytesLike

logger = logging.getLogger(__name__)


class PasswordHasher:
    """
    Argon2id password hashing.

    Flow:
    1. Registration calls hash() once; the encoded hash carries algorithm,
       version, m/t/p parameters, salt and digest
    2. Login calls verify() with the parameters embedded in the stored hash
    3. argon2-cffi compares digests in constant time

    Args:
        time_cost: Argon2 iterations (default: argon2-cffi / RFC 9106 low-memory profile)
        memory_cost: Memory in KiB
        parallelism: Lanes
    """

    def __init__(
        self,
        time_cost: Optional[int] = None,
        memory_cost: Optional[int] = None,
        parallelism: Optional[int] = None,
    ):
        params = {"type": Type.ID}
        if time_cost is not None:
            params["time_cost"] = time_cost
        if memory_cost is not None:
            params["memory_cost"] = memory_cost
        if parallelism is not None:
            params["parallelism"] = parallelism
        self._hasher = Argon2Hasher(**params)

    def hash(self, password: BytesLike) -> bytes:
        """
        Hash a login password with a fresh random salt.

        Returns:
            UTF-8 encoded PHC string

        Raises:
            CryptoError: If Argon2 derivation fails (unexpected, not user-facing)
        """
        try:
            encoded = self._hasher.hash(bytes(password))
        except HashingError as e:
            logger.error("Argon2id derivation failed: %s", e)
            raise CryptoError("password hashing failed") from e
        return encoded.encode("ascii")

    def verify(self, password: BytesLike, password_hash: bytes) -> bool:
        """
        Check a password against a stored hash.

        Returns:
            True on match, False when the hash is well-formed but does not match

        Raises:
            IntegrityError: If the stored hash is malformed (storage corruption,
                            not a wrong password)
        """
        encoded = self._decode(password_hash)
        try:
            return self._hasher.verify(encoded, bytes(password))
        except VerifyMismatchError:
            return False
        except InvalidHashError as e:
            logger.error("Stored password hash is malformed: %s", e)
            raise IntegrityError("stored password hash is malformed") from e
        except VerificationError as e:
            # Parseable PHC string that argon2 still refuses (wrong variant, bad params)
            logger.error("Stored password hash failed to verify structurally: %s", e)
            raise IntegrityError("stored password hash is malformed") from e

    def needs_rehash(self, password_hash: bytes) -> bool:
        """True if the stored hash uses parameters other than the current ones."""
        encoded = self._decode(password_hash)
        try:
            return self._hasher.check_needs_rehash(encoded)
        except InvalidHashError as e:
            raise IntegrityError("stored password hash is malformed") from e

    @staticmethod
    def _decode(password_hash: bytes) -> str:
        if not password_hash:
            raise IntegrityError("stored password hash is empty")
        try:
            return bytes(password_hash).decode("ascii")
        except UnicodeDecodeError as e:
            logger.error("Stored password hash is not ASCII")
            raise IntegrityError("stored password hash is malformed") from e
