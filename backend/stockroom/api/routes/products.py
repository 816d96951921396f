from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Body, Depends, Query, Request, status
from pydantic import AliasGenerator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from starlette.datastructures import UploadFile
from stockroom.api.dependencies import get_current_user_id, get_product_service
from stockroom.core.errors import validation_error
from stockroom.services.product_service import ProductService

router = APIRouter(
    prefix="/products",
    tags=["products"],
    dependencies=[Depends(get_current_user_id)],
)

RESPONSE_CONFIG = ConfigDict(
    from_attributes=True,
    alias_generator=AliasGenerator(serialization_alias=to_camel),
)


class ProductCategory(BaseModel):
    model_config = RESPONSE_CONFIG

    id: int
    name: str
    description: Optional[str] = None


class ProductResponse(BaseModel):
    model_config = RESPONSE_CONFIG

    id: int
    name: str
    description: Optional[str] = None
    sku: str
    price: Decimal
    quantity: int
    min_stock: int
    category_id: int
    image_url: Optional[str] = None
    # quantity <= min_stock; the dashboard highlights these
    low_stock: bool
    category: Optional[ProductCategory] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class ProductPayload:
    fields: Dict[str, Any] = field(default_factory=dict)
    image: Optional[UploadFile] = None


async def read_product_payload(request: Request) -> ProductPayload:
    """
    Read product fields from either a JSON body or a multipart form.

    Multipart requests may carry a single ``image`` file; JSON requests never
    do. Anything else in the form that is a file is ignored.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except ValueError:
            raise validation_error("Malformed JSON body")
        if not isinstance(body, dict):
            raise validation_error("Request body must be an object")
        return ProductPayload(fields=body)

    form = await request.form()
    fields = {key: value for key, value in form.items() if not isinstance(value, UploadFile)}
    image = form.get("image")
    # Browsers send an empty file part when no file was picked
    if not isinstance(image, UploadFile) or not image.filename:
        image = None
    return ProductPayload(fields=fields, image=image)


@router.get("", response_model=List[ProductResponse])
async def list_products(
    category_id: Optional[int] = Query(None, alias="categoryId"),
    low_stock: Optional[bool] = Query(None, alias="lowStock"),
    products: ProductService = Depends(get_product_service),
):
    """List products, optionally filtered by category or low-stock status"""
    return products.list_products(category_id=category_id, low_stock=low_stock)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: int, products: ProductService = Depends(get_product_service)):
    return products.get_product(product_id)


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductPayload = Depends(read_product_payload),
    products: ProductService = Depends(get_product_service),
):
    """Create a product; accepts an optional ``image`` file in multipart requests"""
    return await products.create_product(payload.fields, payload.image)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    payload: ProductPayload = Depends(read_product_payload),
    products: ProductService = Depends(get_product_service),
):
    """Update a product; a new ``image`` replaces the previous one"""
    return await products.update_product(product_id, payload.fields, payload.image)


# /stock is what the dashboard client calls; /quantity is the canonical path
@router.patch("/{product_id}/quantity", response_model=ProductResponse)
@router.patch("/{product_id}/stock", response_model=ProductResponse, include_in_schema=False)
async def update_product_quantity(
    product_id: int,
    quantity: Any = Body(None, embed=True),
    products: ProductService = Depends(get_product_service),
):
    return products.update_quantity(product_id, quantity)


@router.delete("/{product_id}")
async def delete_product(product_id: int, products: ProductService = Depends(get_product_service)):
    """Delete a product and its image"""
    products.delete_product(product_id)
    return {"message": "Product deleted successfully"}
