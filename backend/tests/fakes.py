"""In-memory InventoryStore used by the API and service tests."""

import asyncio
import io
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from starlette.datastructures import Headers, UploadFile

from stockroom.repositories.base import (
    ForeignKeyViolation,
    InventoryStore,
    RecordNotFound,
    UniqueConstraintViolation,
)


def _now():
    return datetime.now(timezone.utc)


@dataclass
class FakeUser:
    id: int
    name: str
    email: str
    hashed_password: str
    created_at: datetime = field(default_factory=_now)
    updated_at: Optional[datetime] = None


@dataclass
class FakeCategory:
    id: int
    name: str
    description: Optional[str] = None
    created_at: datetime = field(default_factory=_now)
    updated_at: Optional[datetime] = None
    products: List[Any] = field(default_factory=list)


@dataclass
class FakeProduct:
    id: int
    name: str
    sku: str
    category_id: int
    description: Optional[str] = None
    price: Decimal = Decimal("0")
    quantity: int = 0
    min_stock: int = 0
    image_url: Optional[str] = None
    category: Optional[FakeCategory] = None
    created_at: datetime = field(default_factory=_now)
    updated_at: Optional[datetime] = None

    @property
    def low_stock(self) -> bool:
        return self.quantity <= self.min_stock


class InMemoryInventoryStore(InventoryStore):
    """
    Mirrors the database constraints: unique email and sku, and products
    must reference an existing category.

    Set ``fail_next_write`` to an exception to make the next mutation raise it.
    """

    def __init__(self) -> None:
        self.users: Dict[int, FakeUser] = {}
        self.categories: Dict[int, FakeCategory] = {}
        self.products: Dict[int, FakeProduct] = {}
        self._next_id = 1
        self.fail_next_write: Optional[Exception] = None
        self.writes = 0

    def _id(self) -> int:
        value = self._next_id
        self._next_id += 1
        return value

    def _write(self) -> None:
        self.writes += 1
        if self.fail_next_write is not None:
            exc, self.fail_next_write = self.fail_next_write, None
            raise exc

    # Users

    def find_user_by_email(self, email):
        return next((u for u in self.users.values() if u.email == email), None)

    def find_user_by_id(self, user_id):
        return self.users.get(user_id)

    def list_users(self):
        return list(self.users.values())

    def create_user(self, name, email, hashed_password):
        self._write()
        if self.find_user_by_email(email) is not None:
            raise UniqueConstraintViolation(email)
        user = FakeUser(id=self._id(), name=name, email=email, hashed_password=hashed_password)
        self.users[user.id] = user
        return user

    def update_user(self, user_id, **fields):
        self._write()
        user = self.users.get(user_id)
        if user is None:
            raise RecordNotFound(user_id)
        email = fields.get("email")
        if email is not None and any(u.email == email and u.id != user_id for u in self.users.values()):
            raise UniqueConstraintViolation(email)
        for key, value in fields.items():
            setattr(user, key, value)
        user.updated_at = _now()
        return user

    def delete_user(self, user_id):
        self._write()
        if self.users.pop(user_id, None) is None:
            raise RecordNotFound(user_id)

    # Categories

    def list_categories(self):
        return list(self.categories.values())

    def get_category(self, category_id):
        category = self.categories.get(category_id)
        if category is not None:
            category.products = [p for p in self.products.values() if p.category_id == category_id]
        return category

    def create_category(self, name, description=None):
        self._write()
        category = FakeCategory(id=self._id(), name=name, description=description)
        self.categories[category.id] = category
        return category

    def update_category(self, category_id, **fields):
        self._write()
        category = self.categories.get(category_id)
        if category is None:
            raise RecordNotFound(category_id)
        for key, value in fields.items():
            setattr(category, key, value)
        category.updated_at = _now()
        return category

    def delete_category(self, category_id):
        self._write()
        if category_id not in self.categories:
            raise RecordNotFound(category_id)
        if self.count_products_in_category(category_id):
            raise ForeignKeyViolation(category_id)
        del self.categories[category_id]

    def count_products_in_category(self, category_id):
        return sum(1 for p in self.products.values() if p.category_id == category_id)

    # Products

    def _check_product(self, fields, product_id=None):
        sku = fields.get("sku")
        if sku is not None and any(p.sku == sku and p.id != product_id for p in self.products.values()):
            raise UniqueConstraintViolation(sku)
        category_id = fields.get("category_id")
        if category_id is not None and category_id not in self.categories:
            raise ForeignKeyViolation(category_id)

    def list_products(self, category_id=None):
        return [p for p in self.products.values() if category_id is None or p.category_id == category_id]

    def find_product_by_id(self, product_id):
        return self.products.get(product_id)

    def create_product(self, **fields):
        self._write()
        self._check_product(fields)
        product = FakeProduct(id=self._id(), **fields)
        product.category = self.categories[product.category_id]
        self.products[product.id] = product
        return product

    def update_product(self, product_id, **fields):
        self._write()
        product = self.products.get(product_id)
        if product is None:
            raise RecordNotFound(product_id)
        self._check_product(fields, product_id)
        for key, value in fields.items():
            setattr(product, key, value)
        product.category = self.categories[product.category_id]
        product.updated_at = _now()
        return product

    def delete_product(self, product_id):
        self._write()
        if self.products.pop(product_id, None) is None:
            raise RecordNotFound(product_id)

    def list_image_urls(self):
        return {p.image_url for p in self.products.values() if p.image_url}


# Smallest valid PNG signature plus padding; storage only checks the declared type
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def image_upload(filename="photo.png", content=PNG_BYTES, content_type="image/png"):
    """A starlette UploadFile like the ones request.form() produces"""
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


def run(coro):
    return asyncio.run(coro)


def files_in(directory):
    return sorted(p.name for p in directory.iterdir()) if directory.exists() else []
