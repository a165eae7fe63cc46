"""
Persistence layer for Strongbox.

SQLite storage of users, vaults and credentials behind an explicitly
passed Database handle.
"""

from .connection import Database
from .migrations import initialize_schema
from .models import Credential, User, Vault
from .repositories import (
    CredentialRepository,
    RepositoryFactory,
    UserRepository,
    VaultRepository,
)

__all__ = [
    "Database",
    "initialize_schema",
    "User",
    "Vault",
    "Credential",
    "UserRepository",
    "VaultRepository",
    "CredentialRepository",
    "RepositoryFactory",
]
