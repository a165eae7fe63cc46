# Strongbox - Local Credential Vault
#
# Passwords and notes are stored only as authenticated ciphertext. A login
# password unlocks a per-vault key; a Session holding that key gates every
# field encryption and decryption, and is zeroized when it ends.

__version__ = "0.1.0"
__description__ = "Local credential vault with Argon2id logins and sealed fields"

from .app import Strongbox
from .config import StrongboxConfig
from .core import (
    AuthenticationFailure,
    AuthorizationFailure,
    IntegrityError,
    StrongboxError,
    ValidationError,
    get_audit_logger,
)
from .vault import Session, SessionState

__all__ = [
    "__version__",
    "Strongbox",
    "StrongboxConfig",
    "Session",
    "SessionState",
    "StrongboxError",
    "ValidationError",
    "AuthenticationFailure",
    "AuthorizationFailure",
    "IntegrityError",
    "get_audit_logger",
]
