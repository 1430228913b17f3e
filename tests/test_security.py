"""
Tests for password hashing, session tokens and reset-token digests.
"""

from datetime import timedelta

import pytest
from jose import jwt

from labsite.core.security import (
    InvalidTokenError,
    decode_unverified,
    generate_reset_token,
    generate_temporary_password,
    hash_password,
    hash_reset_token,
    issue_token,
    verify_password,
    verify_token,
)


class TestPasswords:
    def test_hash_is_salted_and_verifiable(self):
        first = hash_password("correct horse")
        second = hash_password("correct horse")
        assert first != second
        assert first.startswith("$2")
        assert verify_password("correct horse", first)
        assert not verify_password("wrong horse", first)

    def test_missing_or_malformed_digest_never_matches(self):
        assert not verify_password("anything", None)
        assert not verify_password("anything", "")
        assert not verify_password("anything", "not-a-bcrypt-digest")

    def test_temporary_password_length(self):
        password = generate_temporary_password()
        assert len(password) == 12
        assert generate_temporary_password(20) != password


class TestSessionTokens:
    def test_round_trip_carries_claims(self):
        token = issue_token({"id": "u1", "role": "admin"}, secret="s3cret", now=1_000)
        payload = verify_token(token, secret="s3cret", now=1_001)
        assert payload["id"] == "u1"
        assert payload["role"] == "admin"
        assert payload["iat"] == 1_000
        assert payload["exp"] - payload["iat"] == 3600

    def test_valid_until_exactly_exp(self):
        token = issue_token({"id": "u1"}, secret="s3cret", ttl=timedelta(seconds=10), now=1_000)
        verify_token(token, secret="s3cret", now=1_009)
        with pytest.raises(InvalidTokenError, match="expired"):
            verify_token(token, secret="s3cret", now=1_010)

    def test_wrong_secret_rejected(self):
        token = issue_token({"id": "u1"}, secret="s3cret")
        with pytest.raises(InvalidTokenError):
            verify_token(token, secret="other")

    def test_tampered_token_rejected(self):
        token = issue_token({"id": "u1", "role": "member"}, secret="s3cret")
        forged = jwt.encode({"id": "u1", "role": "admin", "exp": 9_999_999_999}, "guess", algorithm="HS256")
        header, _, signature = token.split(".")
        _, payload, _ = forged.split(".")
        with pytest.raises(InvalidTokenError):
            verify_token(f"{header}.{payload}.{signature}", secret="s3cret")

    def test_token_without_exp_rejected(self):
        token = jwt.encode({"id": "u1"}, "s3cret", algorithm="HS256")
        with pytest.raises(InvalidTokenError, match="expiry"):
            verify_token(token, secret="s3cret")

    def test_garbage_rejected(self):
        with pytest.raises(InvalidTokenError):
            verify_token("not.a.token", secret="s3cret")
        with pytest.raises(InvalidTokenError):
            decode_unverified("garbage")

    def test_decode_unverified_ignores_signature_and_expiry(self):
        token = issue_token({"id": "u1"}, secret="s3cret", ttl=timedelta(seconds=1), now=0)
        assert decode_unverified(token)["id"] == "u1"


class TestResetTokens:
    def test_only_digest_is_derived_from_raw_token(self):
        raw, digest = generate_reset_token()
        assert len(raw) == 40
        assert digest == hash_reset_token(raw)
        assert digest != raw
        assert len(digest) == 64

    def test_tokens_are_unique(self):
        assert generate_reset_token()[0] != generate_reset_token()[0]
