import logging
from functools import lru_cache
from pathlib import Path
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session
from stockroom.core.config import settings
from stockroom.core.database import get_db
from stockroom.core.errors import AppError, ErrorKind
from stockroom.core.security import PasswordHasher, TokenExpired, TokenInvalid, TokenIssuer
from stockroom.repositories.base import InventoryStore
from stockroom.repositories.sqlalchemy_store import SqlAlchemyInventoryStore
from stockroom.services.auth_service import AuthService
from stockroom.services.category_service import CategoryService
from stockroom.services.product_service import ProductService
from stockroom.services.user_service import UserService
from stockroom.storage.local_storage import LocalImageStorage

logger = logging.getLogger(__name__)

# Extracts "Authorization: Bearer <token>"; auto_error=False so a missing
# header gets our own error envelope instead of FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)

PRODUCT_IMAGE_SUBDIR = "products"


# Process-wide collaborators, built from settings once

@lru_cache
def get_password_hasher() -> PasswordHasher:
    return PasswordHasher(rounds=settings.BCRYPT_ROUNDS)


@lru_cache
def get_token_issuer() -> TokenIssuer:
    return TokenIssuer(
        secret=settings.JWT_SECRET,
        algorithm=settings.ALGORITHM,
        expires_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
    )


@lru_cache
def get_image_storage() -> LocalImageStorage:
    return LocalImageStorage(
        image_dir=Path(settings.UPLOAD_DIR) / PRODUCT_IMAGE_SUBDIR,
        public_prefix=f"/uploads/{PRODUCT_IMAGE_SUBDIR}",
        max_size=settings.MAX_IMAGE_SIZE,
        allowed_types=settings.get_allowed_image_types(),
    )


# Per-request collaborators

def get_store(db: Session = Depends(get_db)) -> InventoryStore:
    return SqlAlchemyInventoryStore(db)


def get_auth_service(
    store: InventoryStore = Depends(get_store),
    hasher: PasswordHasher = Depends(get_password_hasher),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> AuthService:
    return AuthService(store, hasher, tokens)


def get_product_service(
    store: InventoryStore = Depends(get_store),
    storage: LocalImageStorage = Depends(get_image_storage),
) -> ProductService:
    return ProductService(store, storage)


def get_category_service(store: InventoryStore = Depends(get_store)) -> CategoryService:
    return CategoryService(store)


def get_user_service(store: InventoryStore = Depends(get_store)) -> UserService:
    return UserService(store)


async def get_current_user_id(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    tokens: TokenIssuer = Depends(get_token_issuer),
) -> int:
    """
    Gate for protected routes.

    Verifies the bearer token and stores the user id on request.state.
    An expired token is reported as ``token_expired`` rather than the
    generic ``unauthenticated`` so clients can send the user back to login.
    """
    if credentials is None or not credentials.credentials:
        raise AppError(ErrorKind.UNAUTHENTICATED, "No token, authorization denied")

    try:
        user_id = tokens.verify(credentials.credentials)
    except TokenExpired:
        raise AppError(ErrorKind.TOKEN_EXPIRED, "Token expired")
    except TokenInvalid as e:
        logger.info(f"Rejected invalid token: {e}")
        raise AppError(ErrorKind.UNAUTHENTICATED, "Invalid token")

    request.state.user_id = user_id
    return user_id
