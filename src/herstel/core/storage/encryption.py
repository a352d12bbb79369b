"""Fernet field encryption for patient check-in data at rest.

Raw daily records (nutrition totals, fatigue, pain, sleep, safety flags) are
encrypted before they reach SQLite. Computed scores stay in plain columns so
score history can be queried without decrypting every row.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class EncryptionError(Exception):
    """Raised when a field cannot be encrypted or decrypted."""


class FieldEncryptor:
    """Round-trips JSON-serializable values through a Fernet token.

    Usage::

        encryptor = FieldEncryptor(key=FieldEncryptor.generate_key())
        token = encryptor.encrypt({"fatigue_score": 6})
        encryptor.decrypt(token)  # {"fatigue_score": 6}
    """

    def __init__(self, key: str) -> None:
        """
        Args:
            key: URL-safe base64 Fernet key (see :meth:`generate_key`).

        Raises:
            EncryptionError: If the key is blank or not a valid Fernet key.
        """
        if not key or not key.strip():
            raise EncryptionError("Encryption key must not be empty")
        try:
            self._fernet = Fernet(key.strip().encode("utf-8"))
        except (ValueError, TypeError) as exc:
            raise EncryptionError(f"Invalid encryption key: {exc}") from exc

    def encrypt(self, data: Any) -> str:
        """Serialize ``data`` to compact JSON and encrypt it.

        ``None`` encrypts to the empty string so absent fields stay empty.

        Raises:
            EncryptionError: If ``data`` is not JSON-serializable.
        """
        if data is None:
            return ""
        try:
            plaintext = json.dumps(data, separators=(",", ":"), sort_keys=True)
        except (TypeError, ValueError) as exc:
            raise EncryptionError(f"Encryption failed: {exc}") from exc
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, token: str | None) -> Any:
        """Decrypt a token produced by :meth:`encrypt`.

        Raises:
            EncryptionError: On a wrong key, tampered token or bad payload.
        """
        if not token:
            return None
        try:
            plaintext = self._fernet.decrypt(token.encode("utf-8"))
        except InvalidToken as exc:
            raise EncryptionError("Decryption failed: invalid token or wrong key") from exc
        try:
            return json.loads(plaintext)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise EncryptionError(f"Decryption failed: {exc}") from exc

    @staticmethod
    def generate_key() -> str:
        """Return a fresh Fernet key as text."""
        return Fernet.generate_key().decode("utf-8")
