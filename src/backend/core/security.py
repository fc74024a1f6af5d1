"""Security utilities for voter verification and secret ballots.

Implements one-time code generation and keyed hashing, constant-time
verification, and ballot token minting. Plaintext codes are never stored;
ballot tokens are random and carry no voter information.
"""

import hashlib
import hmac
import secrets

from core.config import settings

# Version tag so the hash format can be rotated later
OTP_HASH_SCHEME = "v1"
OTP_SALT_BYTES = 16


def generate_otp(length: int | None = None) -> str:
    """
    Generate a cryptographically random numeric one-time code.

    The code is always exactly `length` digits with no leading zero,
    matching the codes voters are used to seeing (100000-999999 for 6 digits).
    """
    digits = length or settings.OTP_LENGTH
    low = 10 ** (digits - 1)
    high = 10**digits
    return str(low + secrets.randbelow(high - low))


def _otp_digest(salt: bytes, code: str) -> str:
    """HMAC-SHA256 over salt + code, keyed with the server secret."""
    key = settings.SECRET_KEY.encode("utf-8")
    return hmac.new(key, salt + code.strip().encode("utf-8"), hashlib.sha256).hexdigest()


def hash_otp(code: str) -> str:
    """
    Compute the storable one-way hash of a one-time code.

    A six digit code has too little entropy for a plain hash, so the digest is
    keyed with SECRET_KEY: a leaked verifications table alone cannot be
    brute-forced back into codes. A per-record salt keeps equal codes from
    producing equal hashes.

    Returns:
        "v1$<salt hex>$<digest hex>"
    """
    salt = secrets.token_bytes(OTP_SALT_BYTES)
    return f"{OTP_HASH_SCHEME}${salt.hex()}${_otp_digest(salt, code)}"


def verify_otp(code: str, stored_hash: str) -> bool:
    """Check a submitted code against a stored hash in constant time."""
    try:
        scheme, salt_hex, digest = stored_hash.split("$")
        salt = bytes.fromhex(salt_hex)
    except ValueError:
        return False

    if scheme != OTP_HASH_SCHEME:
        return False

    return hmac.compare_digest(_otp_digest(salt, code), digest)


def generate_ballot_token(num_bytes: int | None = None) -> str:
    """
    Mint an opaque single-use ballot token.

    Defaults to 32 random bytes (256 bits), hex encoded. The token is not
    derived from any voter attribute.
    """
    return secrets.token_hex(num_bytes or settings.BALLOT_TOKEN_BYTES)


def token_fingerprint(token: str) -> str:
    """Short, non-secret prefix of a token for logs and audit payloads."""
    return f"{token[:8]}..."


def constant_time_equals(a: str, b: str) -> bool:
    """Compare two secrets without leaking timing information."""
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))
