# backend/routes/movements.py
import math
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from database import get_db
from models.users import User
from services.ledger import MovementLedger
from services.stock import StockService
from utils.auth import require_admin
import schemas.movement as movement_schemas
import schemas.product as product_schemas

router = APIRouter(prefix="/movements", tags=["Movements"])


class UndoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    message: str
    undo_movement: movement_schemas.MovementOut
    product: product_schemas.ProductOut


@router.get("", response_model=movement_schemas.MovementPage)
def list_movements(
    product_id: Optional[int] = Query(None),
    user_id: Optional[int] = Query(None),
    operation_type: Optional[movement_schemas.OperationTypeLiteral] = Query(None),
    start_date: Optional[datetime] = Query(None, description="Inclusive lower bound"),
    end_date: Optional[datetime] = Query(None, description="Inclusive upper bound"),
    search: Optional[str] = Query(None, description="Search details, product name or username"),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=500),
    sort_by: str = Query("timestamp"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    items, total = MovementLedger(db).query(
        product_id=product_id, user_id=user_id, operation_type=operation_type,
        start_date=start_date, end_date=end_date, search=search,
        sort_by=sort_by, order=order, page=page, page_size=page_size,
    )
    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": math.ceil(total / page_size),
    }


@router.get("/{movement_id}", response_model=movement_schemas.MovementOut)
def get_movement(
    movement_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    return MovementLedger(db).get(movement_id)


@router.post("/{movement_id}/undo", response_model=UndoResponse)
def undo_movement(
    movement_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    result = StockService(db).undo(current_user, movement_id)
    return {
        "message": "Operation undone successfully",
        "undo_movement": result.movement,
        "product": result.product,
    }
