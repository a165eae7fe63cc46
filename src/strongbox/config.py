# Strongbox - Runtime Configuration
#
# Settings come from environment variables, with an optional .env file
# loaded first (python-dotenv, existing variables win). Every value has a
# default; a value that is present but invalid raises ValidationError at
# startup rather than silently falling back.

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .core.exceptions import ValidationError
from .crypto.envelope import AEAD_NAMES
from .vault.field_encryption import FieldKeyMode

logger = logging.getLogger(__name__)

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class StrongboxConfig:
    """
    Attributes:
        db_path: SQLite database file
        log_dir: Directory for daily audit log files
        log_level: Operational log level
        scrypt_log2_n / scrypt_r / scrypt_p: Cost of new passphrase envelopes
        aead: "chacha20" or "aesgcm" for new envelopes
        argon2_*: Argon2id parameters for new password hashes (None = library default)
        field_key_mode: "vault_key" or "passphrase" for new field ciphertexts
    """
    db_path: Path = Path("data/strongbox.db")
    log_dir: Path = Path("audit_logs")
    log_level: str = "INFO"
    scrypt_log2_n: int = 18
    scrypt_r: int = 8
    scrypt_p: int = 1
    aead: str = "chacha20"
    argon2_time_cost: Optional[int] = None
    argon2_memory_cost: Optional[int] = None
    argon2_parallelism: Optional[int] = None
    field_key_mode: FieldKeyMode = FieldKeyMode.VAULT_KEY

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        dotenv_path: Optional[Path] = None,
    ) -> "StrongboxConfig":
        """
        Build the configuration from the environment.

        Args:
            environ: Mapping to read instead of os.environ (tests)
            dotenv_path: .env file to load into os.environ first
                         (default: search from the working directory)

        Raises:
            ValidationError: If any variable holds an invalid value
        """
        if environ is None:
            load_dotenv(dotenv_path=dotenv_path, override=False)
            environ = os.environ

        defaults = cls()
        log_level = environ.get("STRONGBOX_LOG_LEVEL", defaults.log_level).upper()
        if log_level not in _LOG_LEVELS:
            raise ValidationError(f"Invalid STRONGBOX_LOG_LEVEL: {log_level}")

        aead = environ.get("STRONGBOX_AEAD", defaults.aead).lower()
        if aead not in AEAD_NAMES:
            raise ValidationError(f"Invalid STRONGBOX_AEAD: {aead}")

        mode = environ.get("STRONGBOX_FIELD_KEY_MODE", defaults.field_key_mode.value).lower()
        try:
            field_key_mode = FieldKeyMode(mode)
        except ValueError:
            raise ValidationError(f"Invalid STRONGBOX_FIELD_KEY_MODE: {mode}") from None

        config = cls(
            db_path=Path(environ.get("STRONGBOX_DB_PATH", str(defaults.db_path))),
            log_dir=Path(environ.get("STRONGBOX_LOG_DIR", str(defaults.log_dir))),
            log_level=log_level,
            scrypt_log2_n=_int(environ, "STRONGBOX_SCRYPT_LOG2_N", defaults.scrypt_log2_n),
            scrypt_r=_int(environ, "STRONGBOX_SCRYPT_R", defaults.scrypt_r),
            scrypt_p=_int(environ, "STRONGBOX_SCRYPT_P", defaults.scrypt_p),
            aead=aead,
            argon2_time_cost=_int(environ, "STRONGBOX_ARGON2_TIME_COST", None),
            argon2_memory_cost=_int(environ, "STRONGBOX_ARGON2_MEMORY_COST", None),
            argon2_parallelism=_int(environ, "STRONGBOX_ARGON2_PARALLELISM", None),
            field_key_mode=field_key_mode,
        )
        logger.debug("Configuration loaded (db=%s, aead=%s, field keys=%s)",
                     config.db_path, config.aead, config.field_key_mode.value)
        return config


def _int(environ: Mapping[str, str], name: str, default: Optional[int]) -> Optional[int]:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"Invalid {name}: expected an integer") from None
    if value <= 0:
        raise ValidationError(f"Invalid {name}: must be positive")
    return value
