"""Fernet encryption for raw wellness measurements at rest.

Heart rate, steps, stress, sleep and mood readings are serialized to JSON and
encrypted before they reach SQLite. Timestamps, sources and derived pattern
scores stay in the clear so range queries and confidence ordering can use
indexes.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class EncryptionError(Exception):
    """Raised when encryption/decryption fails."""


class MeasurementEncryptor:
    """Encrypts measurement dicts into Fernet tokens and back.

    Usage::

        encryptor = MeasurementEncryptor(key=MeasurementEncryptor.generate_key())
        token = encryptor.encrypt({"stress_level": 72})
        encryptor.decrypt(token)  # {"stress_level": 72}
    """

    def __init__(self, key: str) -> None:
        """
        Raises:
            EncryptionError: If the key is empty or not a valid Fernet key.
        """
        if not key or not key.strip():
            raise EncryptionError("Encryption key must not be empty")
        try:
            self._fernet = Fernet(key.strip().encode("utf-8"))
        except ValueError as exc:
            raise EncryptionError(f"Invalid encryption key: {exc}") from exc

    def encrypt(self, measurements: dict[str, Any]) -> str:
        """Encrypt a measurement mapping to a token string.

        An empty mapping still produces a token, so every stored row carries
        a decryptable blob.
        """
        try:
            plaintext = json.dumps(measurements, sort_keys=True, separators=(",", ":"))
        except (TypeError, ValueError) as exc:
            raise EncryptionError(f"Measurements are not serializable: {exc}") from exc
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, token: str) -> dict[str, Any]:
        """Decrypt a token produced by :meth:`encrypt`.

        Raises:
            EncryptionError: If the token is invalid, was made with another
                key, or does not hold a JSON object.
        """
        if not token:
            return {}
        try:
            plaintext = self._fernet.decrypt(token.encode("utf-8"))
        except InvalidToken as exc:
            raise EncryptionError("Decryption failed: invalid token or wrong key") from exc

        data = json.loads(plaintext)
        if not isinstance(data, dict):
            raise EncryptionError("Decrypted payload is not a measurement mapping")
        return data

    @staticmethod
    def generate_key() -> str:
        """Generate a new URL-safe base64 Fernet key."""
        return Fernet.generate_key().decode("utf-8")
