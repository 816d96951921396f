import pytest

from stockroom.core.errors import AppError, ErrorKind
from stockroom.core.security import TokenIssuer
from stockroom.repositories.base import UniqueConstraintViolation
from stockroom.services.auth_service import AuthService


@pytest.fixture
def auth(store, hasher, tokens):
    return AuthService(store, hasher, tokens)


class TestRegister:
    def test_token_identifies_the_new_user(self, auth, tokens):
        result = auth.register("Ada", "ada@example.com", "pw-123")

        assert result.user.id is not None
        assert tokens.verify(result.token) == result.user.id

    def test_password_is_stored_hashed(self, auth, store, hasher):
        result = auth.register("Ada", "ada@example.com", "pw-123")

        stored = store.find_user_by_id(result.user.id)
        assert stored.hashed_password != "pw-123"
        assert hasher.verify("pw-123", stored.hashed_password)

    def test_duplicate_email_is_rejected(self, auth, store):
        auth.register("Ada", "ada@example.com", "pw-123")

        with pytest.raises(AppError) as excinfo:
            auth.register("Other Ada", "ada@example.com", "pw-456")

        assert excinfo.value.kind is ErrorKind.ALREADY_EXISTS
        assert len(store.list_users()) == 1

    def test_unique_violation_from_store_is_already_exists(self, auth, store):
        # Two registrations racing past the lookup: the store constraint wins
        store.fail_next_write = UniqueConstraintViolation("users.email")

        with pytest.raises(AppError) as excinfo:
            auth.register("Ada", "ada@example.com", "pw-123")

        assert excinfo.value.kind is ErrorKind.ALREADY_EXISTS

    def test_missing_secret_fails_before_any_write(self, store, hasher):
        auth = AuthService(store, hasher, TokenIssuer(secret=None))

        with pytest.raises(AppError) as excinfo:
            auth.register("Ada", "ada@example.com", "pw-123")

        assert excinfo.value.kind is ErrorKind.CONFIG
        assert store.writes == 0


class TestLogin:
    def test_valid_credentials_issue_token(self, auth, tokens):
        registered = auth.register("Ada", "ada@example.com", "pw-123")

        result = auth.login("ada@example.com", "pw-123")

        assert result.user.id == registered.user.id
        assert tokens.verify(result.token) == registered.user.id

    def test_wrong_password_and_unknown_email_are_indistinguishable(self, auth):
        auth.register("Ada", "ada@example.com", "pw-123")

        with pytest.raises(AppError) as wrong_password:
            auth.login("ada@example.com", "nope")
        with pytest.raises(AppError) as unknown_email:
            auth.login("nobody@example.com", "pw-123")

        assert wrong_password.value.kind is ErrorKind.INVALID_CREDENTIALS
        assert unknown_email.value.kind is ErrorKind.INVALID_CREDENTIALS
        assert wrong_password.value.message == unknown_email.value.message

    def test_missing_secret_is_config_error(self, store, hasher):
        auth = AuthService(store, hasher, TokenIssuer(secret=""))

        with pytest.raises(AppError) as excinfo:
            auth.login("ada@example.com", "pw-123")

        assert excinfo.value.kind is ErrorKind.CONFIG
