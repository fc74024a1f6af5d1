"""
SQLAlchemy Type Decorators.

Provides transparent encryption/decryption for PII columns and consistent
UTC handling for timestamps across PostgreSQL and SQLite.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, TypeDecorator

from core.clock import ensure_utc
from core.encryption import decrypt_pii, encrypt_pii


class EncryptedString(TypeDecorator):
    """
    SQLAlchemy type that transparently encrypts/decrypts string values.

    Usage in models:
        email: Mapped[Optional[str]] = mapped_column(EncryptedString(255), nullable=True)

    Encrypted columns are never used in WHERE clauses; the ciphertext is
    randomized per write.
    """

    impl = String
    cache_ok = True

    def __init__(self, length: int = 255, **kwargs):
        """Initialize with column length (should accommodate encrypted data)."""
        # Encrypted data is larger than plaintext (base64 + prefix + nonce + tag)
        super().__init__(length=length * 2 + 100, **kwargs)

    def process_bind_param(self, value: Optional[str], dialect) -> Optional[str]:
        """Encrypt value before storing in database."""
        if value is None:
            return None
        return encrypt_pii(value)

    def process_result_value(self, value: Optional[str], dialect) -> Optional[str]:
        """Decrypt value when reading from database."""
        if value is None:
            return None
        return decrypt_pii(value)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC timestamp.

    Values are normalized to UTC on the way in and always come back aware,
    even on backends (SQLite) that drop the offset. Comparisons against
    bound parameters go through the same normalization, so window checks
    behave identically in SQL and in Python.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        return ensure_utc(value)

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        return ensure_utc(value)
