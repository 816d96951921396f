import logging
from dataclasses import dataclass
from typing import Any
from stockroom.core.errors import AppError, ErrorKind
from stockroom.core.security import PasswordHasher, TokenIssuer
from stockroom.repositories.base import InventoryStore, UniqueConstraintViolation

logger = logging.getLogger(__name__)

# One message for unknown email and wrong password alike, so callers
# can't probe which emails are registered
INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"


@dataclass
class AuthResult:
    user: Any
    token: str


class AuthService:
    """Registration and login on top of the store, hasher and token issuer"""

    def __init__(self, store: InventoryStore, hasher: PasswordHasher, tokens: TokenIssuer) -> None:
        self.store = store
        self.hasher = hasher
        self.tokens = tokens

    def register(self, name: str, email: str, password: str) -> AuthResult:
        """Create a user and sign them in"""
        # Fail before touching the store if no token could be issued afterwards
        self.tokens.ensure_configured()

        # Explicit check gives a clean error; the unique constraint below
        # still catches two registrations racing for the same email
        if self.store.find_user_by_email(email) is not None:
            logger.info(f"Registration rejected, email already in use: {email}")
            raise AppError(ErrorKind.ALREADY_EXISTS, "User already exists")

        hashed_password = self.hasher.hash(password)
        try:
            user = self.store.create_user(name=name, email=email, hashed_password=hashed_password)
        except UniqueConstraintViolation:
            logger.info(f"Registration lost race for email: {email}")
            raise AppError(ErrorKind.ALREADY_EXISTS, "User already exists")

        logger.info(f"User registered: {user.id}")
        return AuthResult(user=user, token=self.tokens.issue(user.id))

    def login(self, email: str, password: str) -> AuthResult:
        """Check credentials and issue a session token"""
        self.tokens.ensure_configured()

        user = self.store.find_user_by_email(email)
        if user is None:
            logger.info(f"Login failed, no user for email: {email}")
            raise AppError(ErrorKind.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE)

        if not self.hasher.verify(password, user.hashed_password):
            logger.info(f"Login failed, wrong password for user: {user.id}")
            raise AppError(ErrorKind.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE)

        logger.info(f"User logged in: {user.id}")
        return AuthResult(user=user, token=self.tokens.issue(user.id))
