"""FastAPI routes for the product catalog."""

import uuid
from datetime import datetime
from functools import lru_cache
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import AliasGenerator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from src.database import get_db
from src.services.asset_store import AssetStore, AssetStoreError, S3AssetStore
from src.services.catalog import (
    CatalogError,
    ImageUpload,
    NotFoundError,
    PayloadTooLargeError,
    ProductCatalog,
    ProductFields,
    UnsupportedMediaError,
    ValidationError,
)
from src.services.product_store import ProductRepository, StoreError

router = APIRouter(prefix="/products", tags=["products"])


class ProductRead(BaseModel):
    """Schema for a product as returned to clients (camelCase keys)."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=AliasGenerator(serialization_alias=to_camel),
    )

    id: uuid.UUID
    item_name: str
    sell_price: float
    type: str
    primary_unit: str | None = None
    custom_unit: str | None = None
    gst_enabled: bool
    gst_percentage: int
    gst_amount: float
    total_price: float
    barcode: str
    image_url: str = ""
    created_at: datetime
    updated_at: datetime


class ProductResponse(BaseModel):
    """Response schema for create, update and delete."""

    message: str = Field(description="Status message")
    product: ProductRead = Field(description="The affected product")


class FieldErrorDetail(BaseModel):
    """Schema for a single invalid field."""

    field: str
    message: str


@lru_cache
def get_asset_store() -> AssetStore:
    """Dependency that provides the product image store."""
    return S3AssetStore()


def get_catalog(
    db: Annotated[AsyncSession, Depends(get_db)],
    asset_store: Annotated[AssetStore, Depends(get_asset_store)],
) -> ProductCatalog:
    """Dependency that provides a catalog bound to the request's session."""
    return ProductCatalog(ProductRepository(db), asset_store)


def to_http_exception(error: Exception) -> HTTPException:
    """Map a catalog, asset or store error onto an HTTP error response."""
    if isinstance(error, ValidationError):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=[
                FieldErrorDetail(field=e.field, message=e.message).model_dump()
                for e in error.errors
            ],
        )
    if isinstance(error, UnsupportedMediaError | PayloadTooLargeError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Product not found")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=str(error),
    )


async def read_image(image: UploadFile | None) -> ImageUpload | None:
    """Read an uploaded file part into an ImageUpload."""
    if image is None:
        return None
    data = await image.read()
    return ImageUpload(filename=image.filename, content_type=image.content_type, data=data)


ItemNameForm = Annotated[str | None, Form(alias="itemName")]
SellPriceForm = Annotated[str | None, Form(alias="sellPrice")]
TypeForm = Annotated[str | None, Form(alias="type")]
PrimaryUnitForm = Annotated[str | None, Form(alias="primaryUnit")]
CustomUnitForm = Annotated[str | None, Form(alias="customUnit")]
GstEnabledForm = Annotated[str | None, Form(alias="gstEnabled")]
ImageFile = Annotated[UploadFile | None, File(description="Product photo (image/*, max 5MB)")]


@router.get("", response_model=list[ProductRead])
async def list_products(
    catalog: Annotated[ProductCatalog, Depends(get_catalog)],
) -> list[ProductRead]:
    """List all products, most recently created first."""
    try:
        products = await catalog.list_products()
    except StoreError as e:
        raise to_http_exception(e) from e
    return [ProductRead.model_validate(p) for p in products]


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    catalog: Annotated[ProductCatalog, Depends(get_catalog)],
    item_name: ItemNameForm = None,
    sell_price: SellPriceForm = None,
    product_type: TypeForm = None,
    primary_unit: PrimaryUnitForm = None,
    custom_unit: CustomUnitForm = None,
    gst_enabled: GstEnabledForm = None,
    image: ImageFile = None,
) -> ProductResponse:
    """Create a product from multipart form data.

    Returns:
        ProductResponse: The created product, with barcode and pricing.

    Raises:
        HTTPException: 400 if fields or the image are invalid.
        HTTPException: 500 if the image upload or the save fails.
    """
    fields = ProductFields(
        item_name=item_name,
        sell_price=sell_price,
        type=product_type,
        primary_unit=primary_unit,
        custom_unit=custom_unit,
        gst_enabled=gst_enabled,
    )
    try:
        product = await catalog.create(fields, await read_image(image))
    except (CatalogError, AssetStoreError, StoreError) as e:
        raise to_http_exception(e) from e

    return ProductResponse(
        message="Product created successfully",
        product=ProductRead.model_validate(product),
    )


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: uuid.UUID,
    catalog: Annotated[ProductCatalog, Depends(get_catalog)],
    item_name: ItemNameForm = None,
    sell_price: SellPriceForm = None,
    product_type: TypeForm = None,
    primary_unit: PrimaryUnitForm = None,
    custom_unit: CustomUnitForm = None,
    gst_enabled: GstEnabledForm = None,
    image: ImageFile = None,
) -> ProductResponse:
    """Replace a product's fields and optionally its photo.

    Raises:
        HTTPException: 404 if the product does not exist.
        HTTPException: 400 if fields or the image are invalid.
        HTTPException: 500 if the image upload or the save fails.
    """
    fields = ProductFields(
        item_name=item_name,
        sell_price=sell_price,
        type=product_type,
        primary_unit=primary_unit,
        custom_unit=custom_unit,
        gst_enabled=gst_enabled,
    )
    try:
        product = await catalog.update(product_id, fields, await read_image(image))
    except (CatalogError, AssetStoreError, StoreError) as e:
        raise to_http_exception(e) from e

    return ProductResponse(
        message="Product updated successfully",
        product=ProductRead.model_validate(product),
    )


@router.delete("/{product_id}", response_model=ProductResponse)
async def delete_product(
    product_id: uuid.UUID,
    catalog: Annotated[ProductCatalog, Depends(get_catalog)],
) -> ProductResponse:
    """Delete a product and its photo.

    Raises:
        HTTPException: 404 if the product does not exist.
        HTTPException: 500 if the record could not be removed.
    """
    try:
        product = await catalog.delete(product_id)
    except (CatalogError, StoreError) as e:
        raise to_http_exception(e) from e

    return ProductResponse(
        message="Product deleted successfully",
        product=ProductRead.model_validate(product),
    )
