"""
Unit tests for security utilities.

Tests password hashing, session token encoding and decoding.
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import ExpiredSignatureError, JWTError

from educore.core.security import (
    create_access_token,
    decode_token,
    hash_password,
    normalize_email,
    verify_password,
)


def tamper(token: str) -> str:
    """Flip one character in the middle of the payload segment."""
    header, payload, signature = token.split(".")
    middle = len(payload) // 2
    flipped = "A" if payload[middle] != "A" else "B"
    return ".".join([header, payload[:middle] + flipped + payload[middle + 1:], signature])


@pytest.mark.unit
class TestPasswordHashing:
    """Test password hashing and verification."""

    def test_hash_password(self):
        password = "secret1"
        hashed = hash_password(password)

        assert hashed != password
        assert hashed.startswith("$2b$")  # Bcrypt prefix

    def test_verify_password_success(self):
        hashed = hash_password("secret1")
        assert verify_password("secret1", hashed) is True

    def test_verify_password_failure(self):
        hashed = hash_password("secret1")
        assert verify_password("secret2", hashed) is False

    def test_different_hashes_for_same_password(self):
        """Same password twice gives different hashes (salt)."""
        assert hash_password("secret1") != hash_password("secret1")

    def test_malformed_hash_is_a_mismatch(self):
        assert verify_password("secret1", "not-a-bcrypt-hash") is False


@pytest.mark.unit
class TestNormalizeEmail:

    def test_lowercases_and_strips(self):
        assert normalize_email("  Admin@Alpha.EDU ") == "admin@alpha.edu"


@pytest.mark.unit
class TestSessionTokens:
    """Test session token generation and validation."""

    def test_round_trip_preserves_claims(self):
        token = create_access_token({"sub": "user-1", "tenant_id": "tenant-1", "role": "teacher"})
        payload = decode_token(token)

        assert payload["sub"] == "user-1"
        assert payload["tenant_id"] == "tenant-1"
        assert payload["role"] == "teacher"
        assert payload["type"] == "access"
        assert payload["jti"]
        assert payload["exp"] > payload["iat"]

    def test_each_token_gets_its_own_id(self):
        claims = {"sub": "user-1", "tenant_id": "tenant-1", "role": "teacher"}
        assert decode_token(create_access_token(claims))["jti"] != decode_token(create_access_token(claims))["jti"]

    def test_custom_lifetime(self):
        now = datetime.now(timezone.utc)
        token = create_access_token({"sub": "user-1"}, expires_delta=timedelta(minutes=5), now=now)
        payload = decode_token(token)

        assert payload["exp"] - payload["iat"] == 300

    def test_tampered_token_is_rejected(self):
        token = create_access_token({"sub": "user-1", "tenant_id": "tenant-1", "role": "teacher"})

        with pytest.raises(JWTError):
            decode_token(tamper(token))

    def test_wrong_key_is_rejected(self):
        from jose import jwt

        forged = jwt.encode(
            {"sub": "user-1", "iat": 0, "exp": 9999999999, "role": "sys_admin"},
            "some-other-key",
            algorithm="HS256",
        )
        with pytest.raises(JWTError):
            decode_token(forged)

    def test_expired_token(self):
        issued = datetime.now(timezone.utc) - timedelta(hours=2)
        token = create_access_token({"sub": "user-1"}, expires_delta=timedelta(hours=1), now=issued)

        with pytest.raises(ExpiredSignatureError):
            decode_token(token)

    def test_expired_token_decodes_without_expiry_check(self):
        issued = datetime.now(timezone.utc) - timedelta(hours=2)
        token = create_access_token({"sub": "user-1"}, expires_delta=timedelta(hours=1), now=issued)

        assert decode_token(token, verify_exp=False)["sub"] == "user-1"
