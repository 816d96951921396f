import logging
from typing import Any, List, Optional, Tuple
from stockroom.core.errors import conflict, not_found, validation_error
from stockroom.repositories.base import ForeignKeyViolation, InventoryStore, RecordNotFound

logger = logging.getLogger(__name__)

CATEGORY_NOT_FOUND_MESSAGE = "Category not found"
CATEGORY_IN_USE_MESSAGE = "Cannot delete category with associated products"


class CategoryService:
    def __init__(self, store: InventoryStore) -> None:
        self.store = store

    def list_categories(self) -> List[Tuple[Any, int]]:
        """Categories paired with how many products each holds"""
        return [
            (category, self.store.count_products_in_category(category.id))
            for category in self.store.list_categories()
        ]

    def get_category(self, category_id: int) -> Any:
        category = self.store.get_category(category_id)
        if category is None:
            raise not_found(CATEGORY_NOT_FOUND_MESSAGE)
        return category

    def create_category(self, name: Optional[str], description: Optional[str] = None) -> Any:
        if not name or not name.strip():
            raise validation_error("Category name is required")
        category = self.store.create_category(name=name.strip(), description=description)
        logger.info(f"Category created: {category.id}")
        return category

    def update_category(self, category_id: int, name: Optional[str] = None, description: Optional[str] = None) -> Any:
        if not name and not description:
            raise validation_error("No data provided for update")
        changes = {}
        if name:
            changes["name"] = name.strip()
        if description is not None:
            changes["description"] = description
        try:
            category = self.store.update_category(category_id, **changes)
        except RecordNotFound:
            raise not_found(CATEGORY_NOT_FOUND_MESSAGE)
        logger.info(f"Category updated: {category_id}")
        return category

    def delete_category(self, category_id: int) -> None:
        """Delete an empty category; one still holding products is left untouched"""
        if self.store.get_category(category_id) is None:
            raise not_found(CATEGORY_NOT_FOUND_MESSAGE)
        if self.store.count_products_in_category(category_id) > 0:
            raise conflict(CATEGORY_IN_USE_MESSAGE)
        try:
            self.store.delete_category(category_id)
        except RecordNotFound:
            raise not_found(CATEGORY_NOT_FOUND_MESSAGE)
        except ForeignKeyViolation:
            # A product was added between the count and the delete
            raise conflict(CATEGORY_IN_USE_MESSAGE)
        logger.info(f"Category deleted: {category_id}")
