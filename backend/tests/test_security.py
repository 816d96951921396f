from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from stockroom.core.errors import AppError, ErrorKind
from stockroom.core.security import PasswordHasher, TokenExpired, TokenInvalid, TokenIssuer

SECRET = "unit-test-secret"


class TestPasswordHasher:
    def setup_method(self):
        self.hasher = PasswordHasher(rounds=4)

    def test_hash_is_salted_and_verifiable(self):
        first = self.hasher.hash("hunter22")
        second = self.hasher.hash("hunter22")

        assert first != "hunter22"
        assert first != second  # fresh salt per hash
        assert self.hasher.verify("hunter22", first)
        assert self.hasher.verify("hunter22", second)

    def test_wrong_password_does_not_verify(self):
        hashed = self.hasher.hash("hunter22")
        assert not self.hasher.verify("hunter23", hashed)

    def test_malformed_hash_is_rejected_not_raised(self):
        assert self.hasher.verify("hunter22", "not-a-bcrypt-hash") is False

    def test_configured_work_factor_is_used(self):
        hashed = PasswordHasher(rounds=10).hash("pw")
        assert hashed.split("$")[2] == "10"


class TestTokenIssuer:
    def setup_method(self):
        self.tokens = TokenIssuer(secret=SECRET, expires_minutes=60)

    def test_issued_token_verifies_to_user_id(self):
        token = self.tokens.issue(42)
        assert self.tokens.verify(token) == 42

    def test_token_carries_one_hour_expiry(self):
        token = self.tokens.issue(7)
        claims = jwt.get_unverified_claims(token)

        assert claims["sub"] == "7"
        assert claims["userId"] == 7
        assert claims["exp"] - claims["iat"] == 3600

    def test_expired_token_reports_expired_not_invalid(self):
        token = self.tokens.issue(1, expires_delta=timedelta(seconds=-5))

        with pytest.raises(TokenExpired):
            self.tokens.verify(token)

    def test_token_signed_with_other_secret_is_invalid(self):
        token = TokenIssuer(secret="someone-else").issue(1)

        with pytest.raises(TokenInvalid):
            self.tokens.verify(token)

    def test_malformed_token_is_invalid(self):
        with pytest.raises(TokenInvalid):
            self.tokens.verify("definitely.not.a-jwt")

    def test_wrong_algorithm_is_invalid(self):
        expire = datetime.now(timezone.utc) + timedelta(minutes=5)
        token = jwt.encode({"sub": "1", "exp": expire}, SECRET, algorithm="HS512")

        with pytest.raises(TokenInvalid):
            self.tokens.verify(token)

    def test_non_numeric_subject_is_invalid(self):
        expire = datetime.now(timezone.utc) + timedelta(minutes=5)
        token = jwt.encode({"sub": "abc", "exp": expire}, SECRET, algorithm="HS256")

        with pytest.raises(TokenInvalid):
            self.tokens.verify(token)

    def test_missing_secret_is_a_config_error(self):
        unconfigured = TokenIssuer(secret=None)

        assert not unconfigured.configured
        with pytest.raises(AppError) as excinfo:
            unconfigured.issue(1)
        assert excinfo.value.kind is ErrorKind.CONFIG
        assert excinfo.value.status_code == 500
