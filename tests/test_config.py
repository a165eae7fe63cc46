# Tests for StrongboxConfig
# Covers: defaults, environment parsing, .env loading, invalid values

from pathlib import Path

import pytest

from strongbox.config import StrongboxConfig
from strongbox.core.exceptions import ValidationError
from strongbox.vault.field_encryption import FieldKeyMode


class TestFromEnv:
    def test_defaults(self):
        config = StrongboxConfig.from_env(environ={})
        assert config.db_path == Path("data/strongbox.db")
        assert config.log_level == "INFO"
        assert (config.scrypt_log2_n, config.scrypt_r, config.scrypt_p) == (18, 8, 1)
        assert config.aead == "chacha20"
        assert config.argon2_time_cost is None
        assert config.field_key_mode is FieldKeyMode.VAULT_KEY

    def test_values_from_environment(self, tmp_path):
        config = StrongboxConfig.from_env(environ={
            "STRONGBOX_DB_PATH": str(tmp_path / "box.db"),
            "STRONGBOX_LOG_DIR": str(tmp_path / "logs"),
            "STRONGBOX_LOG_LEVEL": "debug",
            "STRONGBOX_SCRYPT_LOG2_N": "12",
            "STRONGBOX_AEAD": "AESGCM",
            "STRONGBOX_ARGON2_TIME_COST": "4",
            "STRONGBOX_ARGON2_MEMORY_COST": "65536",
            "STRONGBOX_ARGON2_PARALLELISM": "2",
            "STRONGBOX_FIELD_KEY_MODE": "passphrase",
        })
        assert config.db_path == tmp_path / "box.db"
        assert config.log_dir == tmp_path / "logs"
        assert config.log_level == "DEBUG"
        assert config.scrypt_log2_n == 12
        assert config.aead == "aesgcm"
        assert (config.argon2_time_cost, config.argon2_memory_cost, config.argon2_parallelism) == (4, 65536, 2)
        assert config.field_key_mode is FieldKeyMode.PASSPHRASE

    def test_blank_integer_uses_default(self):
        config = StrongboxConfig.from_env(environ={"STRONGBOX_SCRYPT_R": "  "})
        assert config.scrypt_r == 8

    @pytest.mark.parametrize("name,value", [
        ("STRONGBOX_LOG_LEVEL", "LOUD"),
        ("STRONGBOX_AEAD", "des"),
        ("STRONGBOX_FIELD_KEY_MODE", "plaintext"),
        ("STRONGBOX_SCRYPT_LOG2_N", "eighteen"),
        ("STRONGBOX_ARGON2_TIME_COST", "0"),
    ])
    def test_invalid_values_rejected(self, name, value):
        with pytest.raises(ValidationError):
            StrongboxConfig.from_env(environ={name: value})

    def test_dotenv_file_is_loaded(self, tmp_path, monkeypatch):
        # setenv first so monkeypatch restores (removes) whatever dotenv writes
        monkeypatch.setenv("STRONGBOX_AEAD", "placeholder")
        monkeypatch.delenv("STRONGBOX_AEAD")
        env_file = tmp_path / ".env"
        env_file.write_text("STRONGBOX_AEAD=aesgcm\n", encoding="utf-8")

        config = StrongboxConfig.from_env(dotenv_path=env_file)
        assert config.aead == "aesgcm"

    def test_environment_wins_over_dotenv(self, tmp_path, monkeypatch):
        monkeypatch.setenv("STRONGBOX_AEAD", "chacha20")
        env_file = tmp_path / ".env"
        env_file.write_text("STRONGBOX_AEAD=aesgcm\n", encoding="utf-8")

        config = StrongboxConfig.from_env(dotenv_path=env_file)
        assert config.aead == "chacha20"
