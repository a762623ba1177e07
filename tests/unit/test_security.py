"""Unit tests for security utilities (hashing, API keys and JWT tokens)."""

from datetime import timedelta
from uuid import uuid4

import pytest
from jose import JWTError

from nest_auth.config import settings
from nest_auth.core.security import (
    ACCESS,
    PASSWORD_RESET,
    REFRESH,
    constant_time_equals,
    create_access_token,
    create_purpose_token,
    create_refresh_token,
    decode_purpose_token,
    decode_token,
    generate_api_key,
    get_user_id_from_token,
    hash_api_key,
    hash_password,
    hash_refresh_token,
    verify_password,
    verify_refresh_token,
)


class TestPasswordHashing:
    """Test password hashing functions."""

    def test_hash_password(self):
        """Test that password is hashed (not stored in plain text)."""
        password = "MySecurePassword123!"
        hashed = hash_password(password)

        assert hashed != password
        # Argon2 hashes start with $argon2
        assert hashed.startswith("$argon2")

    def test_verify_password_correct(self):
        hashed = hash_password("MySecurePassword123!")

        assert verify_password("MySecurePassword123!", hashed) is True

    def test_verify_password_incorrect(self):
        hashed = hash_password("MySecurePassword123!")

        assert verify_password("WrongPassword456!", hashed) is False

    def test_hash_same_password_different_hashes(self):
        """Hashing the same password twice gives different digests (salt)."""
        hash1 = hash_password("MySecurePassword123!")
        hash2 = hash_password("MySecurePassword123!")

        assert hash1 != hash2
        assert verify_password("MySecurePassword123!", hash1) is True
        assert verify_password("MySecurePassword123!", hash2) is True

    def test_empty_digest_never_verifies(self):
        """OAuth-only accounts store an empty password."""
        assert verify_password("anything", "") is False
        assert verify_password("", "") is False

    def test_malformed_digest_does_not_raise(self):
        assert verify_password("password", "not-a-hash") is False

    def test_refresh_token_hashing(self):
        token = create_refresh_token(uuid4())
        hashed = hash_refresh_token(token)

        assert hashed != token
        assert verify_refresh_token(token, hashed) is True
        assert verify_refresh_token(create_refresh_token(uuid4()), hashed) is False


class TestApiKeyHashing:
    """API keys use a deterministic keyed hash so they can be looked up."""

    def test_generate_api_key_is_random(self):
        first, second = generate_api_key(), generate_api_key()

        assert first != second
        assert first.startswith("nak_")
        assert len(first) == len("nak_") + 64

    def test_hash_is_deterministic(self):
        key = generate_api_key()

        assert hash_api_key(key) == hash_api_key(key)
        assert len(hash_api_key(key)) == 64

    def test_different_keys_different_hashes(self):
        assert hash_api_key(generate_api_key()) != hash_api_key(generate_api_key())

    def test_hash_depends_on_server_secret(self, monkeypatch):
        key = generate_api_key()
        original = hash_api_key(key)

        monkeypatch.setattr(settings, "api_key_hash_secret", "another-secret")

        assert hash_api_key(key) != original

    def test_constant_time_equals(self):
        assert constant_time_equals("abc", "abc") is True
        assert constant_time_equals("abc", "abd") is False
        assert constant_time_equals("abc", "abcd") is False


class TestJWTTokens:
    """Test JWT token creation and validation."""

    def test_create_access_token(self):
        user_id = uuid4()
        token = create_access_token(user_id)

        payload = decode_token(token)
        assert payload["userId"] == str(user_id)
        assert payload["type"] == ACCESS
        assert "exp" in payload

    def test_refresh_token_signed_with_refresh_secret(self):
        user_id = uuid4()
        token = create_refresh_token(user_id)

        with pytest.raises(JWTError):
            decode_token(token)

        payload = decode_token(token, settings.jwt_refresh_token_secret)
        assert payload["userId"] == str(user_id)
        assert payload["type"] == REFRESH

    def test_refresh_tokens_are_unique(self):
        """Two refresh tokens minted back to back still differ."""
        user_id = uuid4()

        assert create_refresh_token(user_id) != create_refresh_token(user_id)

    def test_expired_token_rejected(self):
        token = create_access_token(uuid4(), expires_delta=timedelta(seconds=-1))

        with pytest.raises(JWTError):
            decode_token(token)

    def test_tampered_token_rejected(self):
        token = create_access_token(uuid4())
        header, payload, signature = token.split(".")
        tampered = f"{header}.{payload}.{signature[:-2]}xx"

        with pytest.raises(JWTError):
            decode_token(tampered)

    def test_get_user_id_from_token(self):
        user_id = uuid4()
        token = create_access_token(user_id)

        assert get_user_id_from_token(token, token_type=ACCESS) == user_id

    def test_get_user_id_rejects_wrong_type(self):
        """A refresh token cannot be used where an access token is required."""
        user_id = uuid4()
        token = create_refresh_token(user_id)

        with pytest.raises(JWTError):
            get_user_id_from_token(token, settings.jwt_refresh_token_secret, token_type=ACCESS)


class TestPurposeTokens:
    def test_round_trip_with_extra_claims(self):
        user_id = uuid4()
        token = create_purpose_token(user_id, PASSWORD_RESET, timedelta(minutes=5), pwd="abc")

        payload = decode_purpose_token(token, PASSWORD_RESET)
        assert payload["userId"] == str(user_id)
        assert payload["pwd"] == "abc"

    def test_wrong_purpose_rejected(self):
        token = create_purpose_token(uuid4(), PASSWORD_RESET, timedelta(minutes=5))

        with pytest.raises(JWTError):
            decode_purpose_token(token, "auth-redirect")

    def test_access_token_is_not_a_purpose_token(self):
        with pytest.raises(JWTError):
            decode_purpose_token(create_access_token(uuid4()), PASSWORD_RESET)
