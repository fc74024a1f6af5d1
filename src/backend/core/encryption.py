"""
Field-Level Encryption for voter contact details.

Provides transparent encryption/decryption of PII stored on the voter roll
using a local AES key supplied through configuration.

This module implements AES-256-GCM encryption for:
- Voter email addresses
- Voter phone numbers

Design Principles:
1. Encryption at rest for PII fields
2. Lookups never go through encrypted columns (voters are found by reg-number)
3. Graceful degradation in development
"""

import base64
import secrets
from functools import lru_cache
from typing import Optional

import structlog
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from core.config import settings

logger = structlog.get_logger(__name__)


class FieldEncryptionError(Exception):
    """Raised when field encryption/decryption fails."""

    pass


class FieldEncryption:
    """
    AES-256-GCM field-level encryption for PII data.

    Uses a 256-bit key from either:
    - Environment variable FIELD_ENCRYPTION_KEY
    - An explicit key (tests)
    """

    # Prefix to identify encrypted data
    ENCRYPTED_PREFIX = "enc:v1:"
    NONCE_BYTES = 12

    def __init__(self, encryption_key: Optional[bytes] = None):
        """
        Initialize with encryption key.

        Args:
            encryption_key: 32-byte AES key. If None, loads from settings.
        """
        self._key = encryption_key or self._load_key()
        self._aesgcm = AESGCM(self._key) if self._key else None

        if self._aesgcm is not None:
            logger.info("field_encryption_initialized", status="enabled")
        else:
            logger.warning(
                "field_encryption_disabled",
                reason="no_key_configured",
                message="Voter contact details will NOT be encrypted. Configure FIELD_ENCRYPTION_KEY for production.",
            )

    def _load_key(self) -> Optional[bytes]:
        """Load encryption key from settings."""
        key_str = settings.FIELD_ENCRYPTION_KEY

        if key_str:
            try:
                key = base64.b64decode(key_str)
            except ValueError as e:
                logger.error("failed_to_decode_encryption_key", error=str(e))
                return None
            if len(key) != 32:
                logger.error("invalid_encryption_key_length", expected=32, actual=len(key))
                return None
            return key

        if settings.APP_ENV in ("production", "staging"):
            logger.error(
                "encryption_key_required_in_production",
                app_env=settings.APP_ENV,
                message="FIELD_ENCRYPTION_KEY must be set in production/staging",
            )
        return None

    @property
    def is_enabled(self) -> bool:
        """Check if encryption is enabled."""
        return self._aesgcm is not None

    def encrypt(self, plaintext: Optional[str]) -> Optional[str]:
        """
        Encrypt a plaintext string.

        Returns:
            Encrypted string with prefix (enc:v1:base64data)
            or original string if encryption disabled
        """
        if not plaintext or self._aesgcm is None:
            return plaintext

        try:
            nonce = secrets.token_bytes(self.NONCE_BYTES)
            ciphertext = self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        except Exception as e:
            logger.error("encryption_failed", error=str(e))
            raise FieldEncryptionError(f"Failed to encrypt field: {e}") from e

        encrypted_data = base64.b64encode(nonce + ciphertext).decode("ascii")
        return f"{self.ENCRYPTED_PREFIX}{encrypted_data}"

    def decrypt(self, ciphertext: Optional[str]) -> Optional[str]:
        """
        Decrypt an encrypted string.

        Values without the enc:v1: prefix were stored before encryption was
        enabled and are returned unchanged.
        """
        if not ciphertext or not ciphertext.startswith(self.ENCRYPTED_PREFIX):
            return ciphertext

        if self._aesgcm is None:
            logger.error("cannot_decrypt_without_key")
            raise FieldEncryptionError("Encryption key not configured, cannot decrypt")

        try:
            encrypted_data = base64.b64decode(ciphertext[len(self.ENCRYPTED_PREFIX) :])
            nonce = encrypted_data[: self.NONCE_BYTES]
            plaintext = self._aesgcm.decrypt(nonce, encrypted_data[self.NONCE_BYTES :], None)
        except Exception as e:
            logger.error("decryption_failed", error=str(e))
            raise FieldEncryptionError(f"Failed to decrypt field: {e}") from e

        return plaintext.decode("utf-8")

    def is_encrypted(self, value: Optional[str]) -> bool:
        """Check if a value is already encrypted."""
        return value.startswith(self.ENCRYPTED_PREFIX) if value else False


@lru_cache()
def get_field_encryption() -> FieldEncryption:
    """Get the singleton FieldEncryption instance."""
    return FieldEncryption()


def generate_encryption_key() -> str:
    """
    Generate a new base64-encoded 256-bit encryption key.

    Run: python -c "from core.encryption import generate_encryption_key; print(generate_encryption_key())"
    """
    return base64.b64encode(secrets.token_bytes(32)).decode("ascii")


def encrypt_pii(value: Optional[str]) -> Optional[str]:
    """Encrypt a PII field value."""
    return get_field_encryption().encrypt(value)


def decrypt_pii(value: Optional[str]) -> Optional[str]:
    """Decrypt a PII field value."""
    return get_field_encryption().decrypt(value)


def mask_email(email: Optional[str]) -> str:
    """Mask an email address for logs: 'jo***@example.com'."""
    if not email or "@" not in email:
        return "***"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


def mask_phone(phone: Optional[str]) -> str:
    """Mask a phone number for logs: '+25670***'."""
    if not phone:
        return "***"
    return f"{phone[:6]}***"
