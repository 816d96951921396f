import logging
from typing import Any, List, Optional, Set
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload
from stockroom.models.category import Category
from stockroom.models.product import Product
from stockroom.models.user import User
from stockroom.repositories.base import (
    ForeignKeyViolation,
    InventoryStore,
    RecordNotFound,
    StoreError,
    UniqueConstraintViolation,
)

logger = logging.getLogger(__name__)

# SQLSTATE codes (PostgreSQL drivers expose them as pgcode / sqlstate)
_UNIQUE_VIOLATION = "23505"
_FOREIGN_KEY_VIOLATION = "23503"


def classify_integrity_error(exc: IntegrityError) -> StoreError:
    """Map a driver IntegrityError onto the store's error kinds"""
    orig = exc.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code == _UNIQUE_VIOLATION:
        return UniqueConstraintViolation(str(orig))
    if code == _FOREIGN_KEY_VIOLATION:
        return ForeignKeyViolation(str(orig))

    # SQLite only reports a message
    message = str(orig).lower()
    if "unique" in message or "duplicate" in message:
        return UniqueConstraintViolation(str(orig))
    if "foreign key" in message:
        return ForeignKeyViolation(str(orig))
    return StoreError(str(orig))


class SqlAlchemyInventoryStore(InventoryStore):
    """InventoryStore backed by a SQLAlchemy session (one per request)"""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _commit(self, instance: Any = None) -> None:
        try:
            self.db.commit()
        except IntegrityError as exc:
            # Rollback so the session stays usable for the rest of the request
            self.db.rollback()
            error = classify_integrity_error(exc)
            logger.info(f"Write rejected by database: {type(error).__name__}")
            raise error from exc
        if instance is not None:
            # Refresh to load auto-generated fields (id, timestamps) from database
            self.db.refresh(instance)

    @staticmethod
    def _apply(instance: Any, fields: dict) -> None:
        for key, value in fields.items():
            setattr(instance, key, value)

    # Users

    def find_user_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == email).first()

    def find_user_by_id(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def list_users(self) -> List[User]:
        return self.db.query(User).order_by(User.id).all()

    def create_user(self, name: str, email: str, hashed_password: str) -> User:
        user = User(name=name, email=email, hashed_password=hashed_password)
        self.db.add(user)
        self._commit(user)
        return user

    def update_user(self, user_id: int, **fields: Any) -> User:
        user = self.find_user_by_id(user_id)
        if user is None:
            raise RecordNotFound(f"user {user_id}")
        self._apply(user, fields)
        self._commit(user)
        return user

    def delete_user(self, user_id: int) -> None:
        user = self.find_user_by_id(user_id)
        if user is None:
            raise RecordNotFound(f"user {user_id}")
        self.db.delete(user)
        self._commit()

    # Categories

    def list_categories(self) -> List[Category]:
        return self.db.query(Category).order_by(Category.id).all()

    def get_category(self, category_id: int) -> Optional[Category]:
        return (
            self.db.query(Category)
            .options(joinedload(Category.products))
            .filter(Category.id == category_id)
            .first()
        )

    def create_category(self, name: str, description: Optional[str] = None) -> Category:
        category = Category(name=name, description=description)
        self.db.add(category)
        self._commit(category)
        return category

    def update_category(self, category_id: int, **fields: Any) -> Category:
        category = self.db.query(Category).filter(Category.id == category_id).first()
        if category is None:
            raise RecordNotFound(f"category {category_id}")
        self._apply(category, fields)
        self._commit(category)
        return category

    def delete_category(self, category_id: int) -> None:
        category = self.db.query(Category).filter(Category.id == category_id).first()
        if category is None:
            raise RecordNotFound(f"category {category_id}")
        # Products are never cascaded; the caller checks the count first and
        # the foreign key catches anything added in between
        if self.count_products_in_category(category_id) > 0:
            raise ForeignKeyViolation(f"category {category_id} still has products")
        self.db.delete(category)
        self._commit()

    def count_products_in_category(self, category_id: int) -> int:
        return (
            self.db.query(func.count(Product.id))
            .filter(Product.category_id == category_id)
            .scalar()
        ) or 0

    # Products

    def list_products(self, category_id: Optional[int] = None) -> List[Product]:
        query = self.db.query(Product).options(joinedload(Product.category))
        if category_id is not None:
            query = query.filter(Product.category_id == category_id)
        return query.order_by(Product.id).all()

    def find_product_by_id(self, product_id: int) -> Optional[Product]:
        return (
            self.db.query(Product)
            .options(joinedload(Product.category))
            .filter(Product.id == product_id)
            .first()
        )

    def create_product(self, **fields: Any) -> Product:
        product = Product(**fields)
        self.db.add(product)
        self._commit(product)
        return product

    def update_product(self, product_id: int, **fields: Any) -> Product:
        product = self.db.query(Product).filter(Product.id == product_id).first()
        if product is None:
            raise RecordNotFound(f"product {product_id}")
        self._apply(product, fields)
        self._commit(product)
        return product

    def delete_product(self, product_id: int) -> None:
        product = self.db.query(Product).filter(Product.id == product_id).first()
        if product is None:
            raise RecordNotFound(f"product {product_id}")
        self.db.delete(product)
        self._commit()

    def list_image_urls(self) -> Set[str]:
        rows = self.db.query(Product.image_url).filter(Product.image_url.isnot(None)).all()
        return {row[0] for row in rows}
