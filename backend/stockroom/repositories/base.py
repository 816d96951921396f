"""
Store contract consumed by the services.

Routes never talk to SQLAlchemy directly; they get an ``InventoryStore`` through
a FastAPI dependency, so tests can swap in an in-memory implementation.
Lookups (``find_*``/``get_*``) return None for a missing row, while mutations
raise one of the ``StoreError`` subclasses below.
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Optional


class StoreError(Exception):
    """Base class for failures reported by the store"""


class RecordNotFound(StoreError):
    """The row targeted by an update or delete doesn't exist"""


class UniqueConstraintViolation(StoreError):
    """A unique column (user email, product sku) already holds the value"""


class ForeignKeyViolation(StoreError):
    """A reference points at a missing row, or a referenced row is still in use"""


class InventoryStore(ABC):
    # Users

    @abstractmethod
    def find_user_by_email(self, email: str) -> Optional[Any]:
        pass

    @abstractmethod
    def find_user_by_id(self, user_id: int) -> Optional[Any]:
        pass

    @abstractmethod
    def list_users(self) -> List[Any]:
        pass

    @abstractmethod
    def create_user(self, name: str, email: str, hashed_password: str) -> Any:
        pass

    @abstractmethod
    def update_user(self, user_id: int, **fields: Any) -> Any:
        pass

    @abstractmethod
    def delete_user(self, user_id: int) -> None:
        pass

    # Categories

    @abstractmethod
    def list_categories(self) -> List[Any]:
        pass

    @abstractmethod
    def get_category(self, category_id: int) -> Optional[Any]:
        pass

    @abstractmethod
    def create_category(self, name: str, description: Optional[str] = None) -> Any:
        pass

    @abstractmethod
    def update_category(self, category_id: int, **fields: Any) -> Any:
        pass

    @abstractmethod
    def delete_category(self, category_id: int) -> None:
        pass

    @abstractmethod
    def count_products_in_category(self, category_id: int) -> int:
        pass

    # Products

    @abstractmethod
    def list_products(self, category_id: Optional[int] = None) -> List[Any]:
        pass

    @abstractmethod
    def find_product_by_id(self, product_id: int) -> Optional[Any]:
        pass

    @abstractmethod
    def create_product(self, **fields: Any) -> Any:
        pass

    @abstractmethod
    def update_product(self, product_id: int, **fields: Any) -> Any:
        pass

    @abstractmethod
    def delete_product(self, product_id: int) -> None:
        pass

    @abstractmethod
    def list_image_urls(self) -> Iterable[str]:
        """All non-null product image urls, used by the orphan sweep"""
        pass
