"""
Strongbox Exception Classes

Callers only ever see the generic messages below. The specific cause of an
authentication or unseal failure goes to the audit log, never into the
exception text.
"""


class StrongboxError(Exception):
    """Base exception for all Strongbox operations"""
    pass


class ValidationError(StrongboxError):
    """Raised when caller input is malformed (message is shown verbatim)"""
    pass


class AuthenticationFailure(StrongboxError):
    """Raised when login fails for any reason (unknown user, wrong password, bad vault envelope)"""

    def __init__(self, message: str = "authentication failed"):
        super().__init__(message)


class AuthorizationFailure(StrongboxError):
    """Raised when a record belongs to another vault or does not exist"""

    def __init__(self, message: str = "record not available"):
        super().__init__(message)


class IntegrityError(StrongboxError):
    """Raised when stored data is corrupt (malformed hash, bad timestamp or id)"""
    pass


class UnsealError(StrongboxError):
    """Raised when an envelope cannot be opened (wrong key, tampered or malformed)"""

    def __init__(self, message: str = "unseal failed"):
        super().__init__(message)


class SessionClosedError(StrongboxError):
    """Raised when a terminated session is used"""

    def __init__(self, message: str = "session is closed"):
        super().__init__(message)


class CryptoError(StrongboxError):
    """Raised when a cryptographic primitive fails unexpectedly"""
    pass
