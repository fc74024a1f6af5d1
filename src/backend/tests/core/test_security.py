"""
Tests for one-time codes and ballot tokens.
"""

import pytest


@pytest.mark.unit
class TestOtpGeneration:
    def test_code_has_configured_length_without_leading_zero(self):
        from core.security import generate_otp

        for _ in range(200):
            code = generate_otp()
            assert len(code) == 6
            assert code.isdigit()
            assert code[0] != "0"

    def test_custom_length(self):
        from core.security import generate_otp

        assert len(generate_otp(8)) == 8


@pytest.mark.unit
class TestOtpHashing:
    def test_hash_never_contains_code(self):
        from core.security import hash_otp

        stored = hash_otp("482913")

        assert "482913" not in stored
        assert stored.startswith("v1$")

    def test_verify_matches_only_the_original_code(self):
        from core.security import hash_otp, verify_otp

        stored = hash_otp("482913")

        assert verify_otp("482913", stored) is True
        assert verify_otp("482914", stored) is False

    def test_surrounding_whitespace_is_ignored(self):
        from core.security import hash_otp, verify_otp

        assert verify_otp(" 482913 ", hash_otp("482913")) is True

    def test_equal_codes_hash_differently(self):
        from core.security import hash_otp

        assert hash_otp("111111") != hash_otp("111111")

    @pytest.mark.parametrize("stored", ["", "garbage", "v2$00$abc", "v1$zz$abc"])
    def test_malformed_hash_never_verifies(self, stored):
        from core.security import verify_otp

        assert verify_otp("123456", stored) is False

    def test_hash_is_keyed_by_secret(self):
        """A stored hash cannot be checked without SECRET_KEY."""
        import hashlib

        from core.security import hash_otp

        _, salt_hex, digest = hash_otp("482913").split("$")
        unkeyed = hashlib.sha256(bytes.fromhex(salt_hex) + b"482913").hexdigest()

        assert digest != unkeyed


@pytest.mark.unit
class TestBallotTokens:
    def test_token_is_256_bit_hex(self):
        from core.security import generate_ballot_token

        token = generate_ballot_token()

        assert len(token) == 64
        int(token, 16)

    def test_tokens_are_unique(self):
        from core.security import generate_ballot_token

        assert len({generate_ballot_token() for _ in range(100)}) == 100

    def test_fingerprint_is_short_prefix(self):
        from core.security import token_fingerprint

        assert token_fingerprint("abcdef0123456789" * 4) == "abcdef01..."

    def test_constant_time_equals(self):
        from core.security import constant_time_equals

        assert constant_time_equals("key", "key") is True
        assert constant_time_equals("key", "other") is False
