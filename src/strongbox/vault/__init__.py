# Vault Module - Sessions and Credential Protection
#
# Login produces a Session holding the unwrapped vault key; field
# encryption and credential management only work through a live Session.

from .auth_service import AuthService
from .credential_service import CredentialService
from .field_encryption import FieldEncryptor, FieldKeyMode, derive_field_key
from .session import LoginAttempt, Session, SessionState

__all__ = [
    "AuthService",
    "CredentialService",
    "FieldEncryptor",
    "FieldKeyMode",
    "derive_field_key",
    "LoginAttempt",
    "Session",
    "SessionState",
]
