"""
Encryption utilities for protecting stored blobs at rest.

Provides key management and Fernet-based helpers so the encrypted blob store
can wrap any other store transparently.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from cryptography.fernet import Fernet, InvalidToken

from exceptions import DecryptionError, EncryptionKeyError

logger = logging.getLogger(__name__)

ENV_KEY_NAME = "EXPENSE_TRACKER_ENCRYPTION_KEY"
CONFIG_FILE = Path("config.yaml")
CONFIG_KEY_PATH = ("security", "encryption_key")

# Every Fernet token starts with the base64 encoding of version byte 0x80.
_FERNET_PREFIX = "gAAAAA"


def _validate_fernet_key(raw_key: str | bytes) -> bytes:
    """Validate and normalize a Fernet key string."""
    key_bytes = raw_key.encode("utf-8") if isinstance(raw_key, str) else raw_key
    try:
        # Validation occurs during instantiation.
        Fernet(key_bytes)
    except (ValueError, TypeError) as exc:
        raise EncryptionKeyError("Invalid Fernet key supplied.", original_error=exc) from exc
    return key_bytes


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def _write_yaml(path: Path, data: Dict[str, Any]) -> None:
    with path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(data, handle, sort_keys=True)


class EncryptionManager:
    """
    Centralized Fernet helper that lazily loads or generates the encryption key.

    Key resolution order:
        1. Environment variable EXPENSE_TRACKER_ENCRYPTION_KEY
        2. config.yaml -> security.encryption_key
        3. Auto-generated key persisted back to config.yaml (if allowed)
    """

    def __init__(
        self,
        *,
        config_file: Path = CONFIG_FILE,
        env_var: str = ENV_KEY_NAME,
        auto_generate: bool = True,
    ) -> None:
        self.config_file = Path(config_file)
        self.env_var = env_var
        self.auto_generate = auto_generate
        self._key: Optional[bytes] = None
        self._fernet: Optional[Fernet] = None

    def _load_from_env(self) -> Optional[bytes]:
        raw_key = os.environ.get(self.env_var)
        if not raw_key:
            return None
        try:
            return _validate_fernet_key(raw_key.strip())
        except EncryptionKeyError as exc:
            raise EncryptionKeyError(
                "Environment encryption key is invalid. Regenerate and re-set the "
                f"{self.env_var} variable.",
                original_error=exc,
            ) from exc

    def _load_from_config(self) -> Optional[bytes]:
        try:
            content = _read_yaml(self.config_file)
        except yaml.YAMLError as exc:
            logger.error("Unable to parse config file for encryption key: %s", exc)
            return None

        section = content.get(CONFIG_KEY_PATH[0]) or {}
        raw_key = section.get(CONFIG_KEY_PATH[1])
        if not raw_key:
            return None
        try:
            return _validate_fernet_key(raw_key)
        except EncryptionKeyError:
            logger.warning("Invalid encryption key stored in %s; regenerating.", self.config_file)
            return None

    def _persist_key(self, key: bytes) -> None:
        try:
            config_data = _read_yaml(self.config_file)
            security_section = config_data.get(CONFIG_KEY_PATH[0]) or {}
            security_section[CONFIG_KEY_PATH[1]] = key.decode("utf-8")
            config_data[CONFIG_KEY_PATH[0]] = security_section
            _write_yaml(self.config_file, config_data)
            logger.info("Generated new encryption key and stored it in %s.", self.config_file)
        except Exception as exc:  # pragma: no cover - disk failure
            logger.error("Failed to persist encryption key to %s: %s", self.config_file, exc)
            raise

    def _generate_key(self) -> bytes:
        key = Fernet.generate_key()
        if self.auto_generate:
            self._persist_key(key)
        return key

    def get_key(self) -> bytes:
        if self._key:
            return self._key

        key = self._load_from_env() or self._load_from_config()
        if key is None:
            if not self.auto_generate:
                raise EncryptionKeyError(
                    f"Encryption key not found. Provide {self.env_var} "
                    "or add security.encryption_key to config.yaml."
                )
            key = self._generate_key()

        self._key = key
        self._fernet = Fernet(key)
        return key

    def _require_fernet(self) -> Fernet:
        if not self._fernet:
            self.get_key()
        if not self._fernet:  # pragma: no cover - satisfy type checker
            raise EncryptionKeyError("Encryption key unavailable.")
        return self._fernet

    def encrypt_text(self, value: Optional[str]) -> Optional[str]:
        """
        Encrypt a text payload. Returns the Fernet token as a string.

        None and empty strings are returned as-is.
        """
        if value is None or value == "":
            return value
        token = self._require_fernet().encrypt(value.encode("utf-8"))
        return token.decode("utf-8")

    def decrypt_text(self, token: Optional[str]) -> Optional[str]:
        """
        Decrypt a Fernet token back into text.

        Raises:
            DecryptionError: If the token is invalid for the current key
        """
        if token is None or token == "":
            return token
        try:
            decrypted = self._require_fernet().decrypt(token.encode("utf-8"))
        except InvalidToken as exc:
            logger.error("Failed to decrypt payload; token invalid.")
            raise DecryptionError("Unable to decrypt stored value.", original_error=exc) from exc
        return decrypted.decode("utf-8")


def is_ciphertext(value: Any) -> bool:
    """Return True when the value looks like a Fernet token."""
    return isinstance(value, str) and value.startswith(_FERNET_PREFIX)


@lru_cache(maxsize=1)
def get_encryption_manager() -> EncryptionManager:
    """Return a singleton EncryptionManager instance."""
    return EncryptionManager()
