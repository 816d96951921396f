from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from fastapi import APIRouter, Depends, status
from pydantic import AliasGenerator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from stockroom.api.dependencies import get_category_service, get_current_user_id
from stockroom.services.category_service import CategoryService

router = APIRouter(
    prefix="/categories",
    tags=["categories"],
    dependencies=[Depends(get_current_user_id)],
)

# Responses are camelCase (productCount, createdAt); models still read
# snake_case attributes off the ORM objects
RESPONSE_CONFIG = ConfigDict(
    from_attributes=True,
    alias_generator=AliasGenerator(serialization_alias=to_camel),
)


class CategoryCreate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None


class CategoryResponse(BaseModel):
    model_config = RESPONSE_CONFIG

    id: int
    name: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CategoryListItem(CategoryResponse):
    product_count: int


class CategoryProduct(BaseModel):
    model_config = RESPONSE_CONFIG

    id: int
    name: str
    sku: str
    price: Decimal
    quantity: int
    min_stock: int
    image_url: Optional[str] = None
    low_stock: bool


class CategoryDetail(CategoryResponse):
    products: List[CategoryProduct] = []
    product_count: int


@router.get("", response_model=List[CategoryListItem])
async def list_categories(categories: CategoryService = Depends(get_category_service)):
    """List all categories with their product counts"""
    return [
        CategoryListItem(
            **CategoryResponse.model_validate(category).model_dump(),
            product_count=count,
        )
        for category, count in categories.list_categories()
    ]


@router.get("/{category_id}", response_model=CategoryDetail)
async def get_category(category_id: int, categories: CategoryService = Depends(get_category_service)):
    """Get a category together with its products"""
    category = categories.get_category(category_id)
    products = [CategoryProduct.model_validate(p) for p in category.products]
    return CategoryDetail(
        **CategoryResponse.model_validate(category).model_dump(),
        products=products,
        product_count=len(products),
    )


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(payload: CategoryCreate, categories: CategoryService = Depends(get_category_service)):
    return categories.create_category(payload.name, payload.description)


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: int,
    payload: CategoryUpdate,
    categories: CategoryService = Depends(get_category_service),
):
    return categories.update_category(category_id, name=payload.name, description=payload.description)


@router.delete("/{category_id}")
async def delete_category(category_id: int, categories: CategoryService = Depends(get_category_service)):
    """Delete a category; refused while products still belong to it"""
    categories.delete_category(category_id)
    return {"message": "Category deleted successfully"}
