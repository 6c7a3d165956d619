"""
Token and configuration tests.
"""

import pytest
from datetime import timedelta
from jose import jwt

from oasis.auth.passwords import hash_password, verify_password
from oasis.auth.tokens import extract_bearer_token, issue_token, verify_token
from oasis.config import ConfigurationError, Settings, parse_duration
from oasis.errors import TokenExpired, TokenInvalidSignature, TokenMalformed


class TestTokens:

    def test_round_trip(self):
        assert verify_token(issue_token("USR_ABC")) == "USR_ABC"

    def test_tokens_are_distinct(self):
        assert issue_token("USR_ABC") != issue_token("USR_ABC")

    def test_expired(self):
        token = issue_token("USR_ABC", expires_in=timedelta(seconds=-30))
        with pytest.raises(TokenExpired):
            verify_token(token)

    def test_wrong_secret(self):
        token = jwt.encode({"sub": "USR_ABC"}, "someone-else", algorithm="HS256")
        with pytest.raises(TokenInvalidSignature):
            verify_token(token)

    def test_tampered_payload(self):
        header, _, signature = issue_token("USR_ABC").split(".")
        forged = jwt.encode({"sub": "USR_ADMIN"}, "x", algorithm="HS256").split(".")[1]
        with pytest.raises(TokenInvalidSignature):
            verify_token(f"{header}.{forged}.{signature}")

    @pytest.mark.parametrize("token", ["", "garbage", "a.b", "not.a.jwt"])
    def test_malformed(self, token):
        with pytest.raises(TokenMalformed):
            verify_token(token)

    def test_missing_subject(self):
        token = jwt.encode({"foo": "bar"}, "test-secret-key", algorithm="HS256")
        with pytest.raises(TokenMalformed):
            verify_token(token)

    def test_unusable_claims(self):
        token = jwt.encode({"sub": "USR_ABC", "exp": "tomorrow"}, "test-secret-key", algorithm="HS256")
        with pytest.raises(TokenMalformed):
            verify_token(token)

    def test_bearer_extraction(self):
        assert extract_bearer_token("Bearer abc.def") == "abc.def"
        assert extract_bearer_token("bearer abc") == "abc"
        assert extract_bearer_token("Basic abc") is None
        assert extract_bearer_token("Bearer ") is None
        assert extract_bearer_token(None) is None


class TestPasswords:

    def test_hash_and_verify(self):
        stored = hash_password("s3cret!")
        assert "s3cret!" not in stored
        assert verify_password("s3cret!", stored)
        assert not verify_password("wrong", stored)

    def test_salted(self):
        assert hash_password("same") != hash_password("same")

    def test_garbage_hash(self):
        assert not verify_password("x", "not-a-hash")


class TestSettings:

    def test_missing_secret_fails(self, monkeypatch):
        monkeypatch.delenv("JWT_SECRET_KEY", raising=False)
        with pytest.raises(ConfigurationError):
            Settings()

    def test_defaults(self, monkeypatch):
        monkeypatch.setenv("JWT_SECRET_KEY", "k")
        monkeypatch.delenv("JWT_EXPIRES_IN", raising=False)
        monkeypatch.setenv("CORS_ORIGINS", "http://a.test, http://b.test")
        settings = Settings()
        assert settings.jwt_expires_in == timedelta(days=7)
        assert settings.jwt_algorithm == "HS256"
        assert settings.cors_origins == ["http://a.test", "http://b.test"]

    @pytest.mark.parametrize("value, expected", [
        ("7d", timedelta(days=7)),
        ("12h", timedelta(hours=12)),
        ("30m", timedelta(minutes=30)),
        ("3600", timedelta(seconds=3600)),
    ])
    def test_parse_duration(self, value, expected):
        assert parse_duration(value) == expected

    def test_parse_duration_rejects_garbage(self):
        with pytest.raises(ConfigurationError):
            parse_duration("soon")
