import logging
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from stockroom.core.errors import AppError, ErrorKind

logger = logging.getLogger(__name__)


class TokenError(Exception):
    """Base class for session token verification failures"""


class TokenExpired(TokenError):
    """Token was well-formed and correctly signed but is past its expiry"""


class TokenInvalid(TokenError):
    """Any other verification failure: bad signature, malformed, wrong algorithm"""


class PasswordHasher:
    """
    One-way salted password hashing using bcrypt.

    bcrypt generates a fresh salt per hash and stores it inside the hash, so
    the same password produces different hashes. The work factor is fixed at
    construction.
    """

    def __init__(self, rounds: int = 10) -> None:
        self._context = CryptContext(
            schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds
        )

    def hash(self, password: str) -> str:
        return self._context.hash(password)

    def verify(self, password: str, hashed_password: str) -> bool:
        """Verify a password against a hash using constant-time comparison"""
        try:
            return self._context.verify(password, hashed_password)
        except (ValueError, TypeError):
            # Stored value isn't a recognisable bcrypt hash
            logger.warning("Stored password hash could not be identified")
            return False


class TokenIssuer:
    """
    Signs and verifies session tokens (JWT).

    Tokens are stateless: they carry the user id in ``sub`` (and ``userId``)
    plus ``iat``/``exp`` claims. Expiry is the only way a token stops being
    valid - there is no revocation list.
    """

    def __init__(
        self,
        secret: Optional[str],
        algorithm: str = "HS256",
        expires_minutes: int = 60,
    ) -> None:
        self._secret = secret or None
        self._algorithm = algorithm
        self._expires_delta = timedelta(minutes=expires_minutes)

    @property
    def configured(self) -> bool:
        return self._secret is not None

    def ensure_configured(self) -> None:
        """Raise ConfigError if no signing secret was provided"""
        if not self.configured:
            logger.critical("JWT_SECRET is not defined; session tokens cannot be signed")
            raise AppError(ErrorKind.CONFIG)

    def issue(self, user_id: int, expires_delta: Optional[timedelta] = None) -> str:
        """Create a signed token for ``user_id``"""
        self.ensure_configured()
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta if expires_delta is not None else self._expires_delta)
        # python-jose converts datetime claims to NumericDate
        claims = {
            "sub": str(user_id),
            "userId": user_id,
            "iat": now,
            "exp": expire,
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> int:
        """
        Verify ``token`` and return the user id it was issued for.

        Raises TokenExpired once the token is past ``exp`` and TokenInvalid
        for every other failure.
        """
        self.ensure_configured()
        try:
            # algorithms is pinned so a token signed with anything else is rejected
            payload = jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except ExpiredSignatureError as exc:
            raise TokenExpired("Token expired") from exc
        except JWTError as exc:
            raise TokenInvalid(str(exc)) from exc

        try:
            return int(payload["sub"])
        except (KeyError, ValueError, TypeError) as exc:
            raise TokenInvalid("Token subject is missing or malformed") from exc
