# backend/models/movement.py
import enum

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String,
)
from sqlalchemy.orm import relationship
from database import Base
from utils.clock import utcnow


class OperationType(str, enum.Enum):
    ADD = "add"
    TAKE = "take"
    ADJUST = "adjust"
    EDIT = "edit"
    UNDO = "undo"


# Only these can be reversed; edit and undo movements are final.
REVERSIBLE_OPERATIONS = frozenset({OperationType.ADD.value, OperationType.TAKE.value, OperationType.ADJUST.value})


# One entry of the stock ledger. Rows are written once and only ever
# touched again to flip is_undone. Product and user names are snapshots
# taken when the movement happened.
class Movement(Base):
    __tablename__ = "movements"
    __table_args__ = (
        CheckConstraint("new_quantity = old_quantity + quantity_change", name="ck_movements_balance"),
        CheckConstraint("new_quantity >= 0", name="ck_movements_new_quantity"),
        CheckConstraint(
            "(operation_type = 'undo' AND original_movement_id IS NOT NULL) "
            "OR (operation_type != 'undo' AND original_movement_id IS NULL)",
            name="ck_movements_undo_link",
        ),
        CheckConstraint(
            "operation_type IN ('add', 'take', 'adjust', 'edit', 'undo')",
            name="ck_movements_operation_type",
        ),
        Index("ix_movements_product_timestamp", "product_id", "timestamp"),
    )

    id = Column(Integer, primary_key=True, index=True)

    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    product_name = Column(String, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    username = Column(String(100), nullable=False)

    operation_type = Column(String(20), nullable=False, index=True)
    quantity_change = Column(Integer, nullable=False)
    old_quantity = Column(Integer, nullable=False)
    new_quantity = Column(Integer, nullable=False)

    # Naive UTC, written by the ledger
    timestamp = Column(DateTime, nullable=False, default=utcnow, index=True)
    details = Column(String, nullable=True)

    is_undone = Column(Boolean, nullable=False, default=False)
    # Unique: a movement can be reversed by at most one undo movement
    original_movement_id = Column(Integer, ForeignKey("movements.id"), nullable=True, unique=True)

    original_movement = relationship("Movement", remote_side=[id], uselist=False)
