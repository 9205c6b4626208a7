# backend/routes/products.py
import math
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from services.products import ProductStore
from services.stock import StockService
from utils.auth import get_current_user, require_admin
import schemas.product as product_schemas

router = APIRouter(prefix="/products", tags=["Products"])


# =========================
# PRODUCT LIST
# =========================
@router.get("", response_model=product_schemas.ProductListPage)
def list_products(
    search: Optional[str] = Query(None, description="Search by name or SKU"),
    category: Optional[str] = Query(None),
    is_active: Optional[bool] = Query(None),
    low_stock: bool = Query(False, description="Only products at or below their minimum"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=500),
    sort_by: str = Query("name"),
    order: str = Query("asc", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    items, total = ProductStore(db).query(
        search=search, category=category, is_active=is_active, low_stock=low_stock,
        sort_by=sort_by, order=order, page=page, page_size=page_size,
    )
    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": math.ceil(total / page_size),
    }


# =========================
# LOOKUPS
# =========================
@router.get("/unique/categories", response_model=List[str])
def get_product_categories(
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user),
):
    return ProductStore(db).categories()


# =========================
# SINGLE PRODUCT
# =========================
@router.get("/{product_id}", response_model=product_schemas.ProductOut)
def get_product(
    product_id: int,
    db: Session = Depends(get_db), current_user: User = Depends(get_current_user),
):
    return ProductStore(db).get(product_id)


# =========================
# CREATE PRODUCT
# =========================
@router.post("", response_model=product_schemas.StockOperationResponse, status_code=201)
def create_product(
    payload: product_schemas.ProductCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    result = StockService(db).create_product(current_user, **payload.model_dump())
    return {"product": result.product, "movement": result.movement}


# =========================
# UPDATE PRODUCT DETAILS
# =========================
@router.put("/{product_id}", response_model=product_schemas.StockOperationResponse)
def update_product(
    product_id: int,
    payload: product_schemas.ProductUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    result = StockService(db).update_product(current_user, product_id, payload.model_dump(exclude_unset=True))
    return {"product": result.product, "movement": result.movement}


# =========================
# STOCK OPERATIONS
# =========================
@router.post("/{product_id}/take", response_model=product_schemas.StockOperationResponse)
def take_stock(
    product_id: int,
    payload: product_schemas.TakeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    result = StockService(db).take(current_user, product_id, payload.quantity, payload.details)
    return {"product": result.product, "movement": result.movement}


@router.post("/{product_id}/adjust", response_model=product_schemas.StockOperationResponse)
def adjust_stock(
    product_id: int,
    payload: product_schemas.AdjustRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    result = StockService(db).adjust(current_user, product_id, payload.quantity, payload.details)
    return {"product": result.product, "movement": result.movement}


@router.patch("/{product_id}/activate", response_model=product_schemas.ProductOut)
def set_product_active(
    product_id: int,
    payload: product_schemas.ActivateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    return StockService(db).set_active(current_user, product_id, payload.is_active)
