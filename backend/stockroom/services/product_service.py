import logging
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional
from fastapi import UploadFile
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel
from stockroom.core.errors import AppError, ErrorKind, conflict, not_found, validation_error
from stockroom.repositories.base import (
    ForeignKeyViolation,
    InventoryStore,
    RecordNotFound,
    StoreError,
    UniqueConstraintViolation,
)
from stockroom.services.image_lifecycle import release_image, stage_image
from stockroom.storage.local_storage import LocalImageStorage

logger = logging.getLogger(__name__)

PRODUCT_NOT_FOUND_MESSAGE = "Product not found"
REQUIRED_FIELDS_MESSAGE = "Name, SKU and category ID are required"


class ProductCreate(BaseModel):
    # Accepts both camelCase (minStock) and snake_case (min_stock) input
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    name: str = Field(min_length=1)
    description: Optional[str] = None
    sku: str = Field(min_length=1)
    price: Decimal = Field(default=Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    quantity: int = Field(default=0, ge=0)
    min_stock: int = Field(default=0, ge=0)
    category_id: int


class ProductUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    sku: Optional[str] = Field(default=None, min_length=1)
    price: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    quantity: Optional[int] = Field(default=None, ge=0)
    min_stock: Optional[int] = Field(default=None, ge=0)
    category_id: Optional[int] = None


def _clean_payload(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Drop blank values so form posts behave like omitted fields.

    Form fields arrive as strings and an untouched input is sent as "".
    ``description`` is exempt: an empty string clears it.
    """
    cleaned = {}
    for key, value in payload.items():
        if isinstance(value, str) and value.strip() == "" and key != "description":
            continue
        if value is None:
            continue
        cleaned[key] = value
    return cleaned


def _describe_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or "request"
    return f"Invalid value for {field}: {first.get('msg', 'invalid')}"


def parse_product_create(payload: Mapping[str, Any]) -> Dict[str, Any]:
    data = _clean_payload(payload)
    if not data.get("name") or not data.get("sku") or not (data.get("categoryId") or data.get("category_id")):
        raise validation_error(REQUIRED_FIELDS_MESSAGE)
    try:
        return ProductCreate.model_validate(data).model_dump()
    except ValidationError as exc:
        raise validation_error(_describe_validation_error(exc))


def parse_product_update(payload: Mapping[str, Any]) -> Dict[str, Any]:
    data = _clean_payload(payload)
    try:
        return ProductUpdate.model_validate(data).model_dump(exclude_unset=True)
    except ValidationError as exc:
        raise validation_error(_describe_validation_error(exc))


def parse_quantity(value: Any) -> int:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise validation_error("Quantity is required")
    # bool is an int subclass; "true" isn't a quantity
    if isinstance(value, bool):
        raise validation_error("Quantity must be a non-negative integer")
    try:
        quantity = int(value)
    except (TypeError, ValueError):
        raise validation_error("Quantity must be a non-negative integer")
    if quantity < 0 or (isinstance(value, float) and value != quantity):
        raise validation_error("Quantity must be a non-negative integer")
    return quantity


class ProductService:
    """
    Product CRUD with image handling.

    Every write that may carry an image runs inside ``stage_image`` so an
    upload is either owned by its row or deleted before the request ends.
    """

    def __init__(self, store: InventoryStore, storage: LocalImageStorage) -> None:
        self.store = store
        self.storage = storage

    def list_products(self, category_id: Optional[int] = None, low_stock: Optional[bool] = None) -> List[Any]:
        products = self.store.list_products(category_id=category_id)
        if low_stock is not None:
            products = [p for p in products if p.low_stock == low_stock]
        return products

    def get_product(self, product_id: int) -> Any:
        product = self.store.find_product_by_id(product_id)
        if product is None:
            raise not_found(PRODUCT_NOT_FOUND_MESSAGE)
        return product

    def _translate_write_error(self, exc: Exception, action: str) -> AppError:
        if isinstance(exc, UniqueConstraintViolation):
            return conflict("SKU already exists")
        if isinstance(exc, ForeignKeyViolation):
            return conflict("Invalid category ID")
        if isinstance(exc, RecordNotFound):
            return not_found(PRODUCT_NOT_FOUND_MESSAGE)
        logger.error(f"Error {action} product: {exc!r}")
        return AppError(ErrorKind.INTERNAL, f"Error {action} product")

    async def create_product(self, payload: Mapping[str, Any], image: Optional[UploadFile] = None) -> Any:
        """Validate, save the image (if any) and insert the row"""
        async with stage_image(self.storage, image) as staged:
            data = parse_product_create(payload)
            try:
                product = self.store.create_product(**data, image_url=staged.public_url)
            except AppError:
                raise
            except Exception as exc:
                if not isinstance(exc, StoreError):
                    logger.exception("Unexpected error creating product")
                raise self._translate_write_error(exc, "creating") from exc
            staged.commit()

        logger.info(f"Product created: {product.id} (sku={product.sku})")
        return product

    async def update_product(
        self, product_id: int, payload: Mapping[str, Any], image: Optional[UploadFile] = None
    ) -> Any:
        """Apply changes; a new image replaces and releases the previous one"""
        async with stage_image(self.storage, image) as staged:
            current = self.store.find_product_by_id(product_id)
            if current is None:
                raise not_found(PRODUCT_NOT_FOUND_MESSAGE)
            # Read before the update - the store may hand back the same object
            previous_url = current.image_url

            changes = parse_product_update(payload)
            if staged.present:
                changes["image_url"] = staged.public_url

            try:
                product = self.store.update_product(product_id, **changes)
            except AppError:
                raise
            except Exception as exc:
                if not isinstance(exc, StoreError):
                    logger.exception(f"Unexpected error updating product {product_id}")
                raise self._translate_write_error(exc, "updating") from exc
            staged.commit(previous_url=previous_url)

        logger.info(f"Product updated: {product_id}")
        return product

    def update_quantity(self, product_id: int, quantity: Any) -> Any:
        value = parse_quantity(quantity)
        try:
            product = self.store.update_product(product_id, quantity=value)
        except Exception as exc:
            if not isinstance(exc, StoreError):
                logger.exception(f"Unexpected error updating quantity of product {product_id}")
            raise self._translate_write_error(exc, "updating quantity of") from exc
        logger.info(f"Product {product_id} quantity set to {value}")
        return product

    def delete_product(self, product_id: int) -> None:
        """Delete the row, then release its image best-effort"""
        product = self.store.find_product_by_id(product_id)
        if product is None:
            raise not_found(PRODUCT_NOT_FOUND_MESSAGE)
        image_url = product.image_url

        try:
            self.store.delete_product(product_id)
        except Exception as exc:
            if not isinstance(exc, StoreError):
                logger.exception(f"Unexpected error deleting product {product_id}")
            raise self._translate_write_error(exc, "deleting") from exc

        if image_url:
            release_image(self.storage, image_url)
        logger.info(f"Product deleted: {product_id}")
