"""Zeroizable secret buffers.

Python ``bytes`` and ``str`` are immutable and cannot be scrubbed, so every
secret Strongbox keeps for longer than a single call lives in a
``bytearray`` owned by a :class:`SecretBytes`. ``wipe()`` overwrites the
buffer in place; the buffer is never resized, so no stale copy is left
behind by reallocation.
"""

from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]


def wipe(buffer: bytearray) -> None:
    """Overwrite a mutable buffer with zero bytes in place."""
    if buffer is None:
        return
    for i in range(len(buffer)):
        buffer[i] = 0


class SecretBytes:
    """Owned, zeroizable secret material.

    Usage:
        with SecretBytes(os.urandom(32)) as key:
            use(key.view())
        # key is zeroed here
    """

    __slots__ = ("_buf", "_wiped")

    def __init__(self, data: BytesLike):
        self._buf = bytearray(data)
        self._wiped = False

    @classmethod
    def from_str(cls, value: str) -> "SecretBytes":
        return cls(value.encode("utf-8"))

    def view(self) -> memoryview:
        """Read-only view over the secret (no copy)."""
        if self._wiped:
            raise ValueError("secret has been wiped")
        return memoryview(self._buf).toreadonly()

    def reveal(self) -> bytes:
        """Return an immutable copy. Only for APIs that insist on ``bytes``."""
        if self._wiped:
            raise ValueError("secret has been wiped")
        return bytes(self._buf)

    def wipe(self) -> None:
        wipe(self._buf)
        self._wiped = True

    @property
    def wiped(self) -> bool:
        return self._wiped

    @property
    def buffer(self) -> bytearray:
        """The underlying storage (inspection in tests)."""
        return self._buf

    def __len__(self) -> int:
        return len(self._buf)

    def __enter__(self) -> "SecretBytes":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.wipe()

    def __repr__(self) -> str:
        state = "wiped" if self._wiped else f"{len(self._buf)} bytes"
        return f"<SecretBytes {state}>"
