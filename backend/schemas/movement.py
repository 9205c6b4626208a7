# backend/schemas/movement.py
from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import List, Optional, Literal

# Allowed ledger operation types
OperationTypeLiteral = Literal["add", "take", "adjust", "edit", "undo"]


# Short view of the movement an undo reverses
class OriginalMovementOut(BaseModel):
    id: int
    operation_type: OperationTypeLiteral
    quantity_change: int

    model_config = ConfigDict(from_attributes=True)


# Schema for returning a ledger entry
class MovementOut(BaseModel):
    id: int
    product_id: int
    product_name: str
    user_id: int
    username: str
    operation_type: OperationTypeLiteral
    quantity_change: int
    old_quantity: int
    new_quantity: int
    timestamp: datetime
    details: Optional[str] = None
    is_undone: bool
    original_movement_id: Optional[int] = None
    original_movement: Optional[OriginalMovementOut] = None

    model_config = ConfigDict(from_attributes=True)


# Paginated response for movement history
class MovementPage(BaseModel):
    items: List[MovementOut]
    total: int
    page: int
    page_size: int
    total_pages: int

    model_config = ConfigDict(from_attributes=True)
