# backend/schemas/product.py
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict, StrictBool, StrictInt
from typing import Optional, List

from schemas.movement import MovementOut


# Base configuration for ORM compatibility
class ORMBase(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# Schema for creating a new product
class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1)
    sku: str = Field(..., min_length=1)
    quantity: StrictInt = Field(0, ge=0)
    unit: str = "pcs"
    min_quantity: StrictInt = Field(0, ge=0)
    category: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None


# Schema for partial product updates; quantity is changed via take/adjust only
class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    sku: Optional[str] = Field(None, min_length=1)
    unit: Optional[str] = None
    min_quantity: Optional[StrictInt] = Field(None, ge=0)
    category: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None


class TakeRequest(BaseModel):
    quantity: StrictInt = Field(..., gt=0)
    details: Optional[str] = None


# Signed change; negative values remove stock
class AdjustRequest(BaseModel):
    quantity: StrictInt
    details: Optional[str] = None


class ActivateRequest(BaseModel):
    is_active: StrictBool


# Full product representation including the derived low-stock flag
class ProductOut(ORMBase):
    id: int
    name: str
    sku: str
    quantity: int
    min_quantity: int
    unit: str
    category: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool
    is_low_stock: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Paginated response for product listings
class ProductListPage(ORMBase):
    items: List[ProductOut]
    total: int
    page: int
    page_size: int
    total_pages: int


# Result of an operation that changed stock: the product after commit and the ledger entry
class StockOperationResponse(ORMBase):
    product: ProductOut
    movement: Optional[MovementOut] = None
