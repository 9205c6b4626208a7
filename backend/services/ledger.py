# backend/services/ledger.py
from datetime import datetime
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from models.movement import Movement
from services.errors import Conflict, NotFound
from utils.clock import as_naive_utc, utcnow

SORTABLE_COLUMNS = {
    "id": Movement.id,
    "timestamp": Movement.timestamp,
    "product_id": Movement.product_id,
    "product_name": Movement.product_name,
    "username": Movement.username,
    "operation_type": Movement.operation_type,
    "quantity_change": Movement.quantity_change,
}


class MovementLedger:
    """
    Append-only log of stock-affecting events.

    Nothing here deletes a movement or rewrites its quantities; the only
    write after ``append`` is the one-way ``is_undone`` flip.
    """

    def __init__(self, db: Session):
        self.db = db

    def append(self, **fields) -> Movement:
        fields.setdefault("timestamp", utcnow())
        fields.setdefault("is_undone", False)
        movement = Movement(**fields)
        self.db.add(movement)
        self.db.flush()
        return movement

    def get(self, movement_id: int) -> Movement:
        movement = (
            self.db.query(Movement)
            .options(joinedload(Movement.original_movement))
            .filter(Movement.id == movement_id)
            .first()
        )
        if movement is None:
            raise NotFound("Movement not found", movement_id=movement_id)
        return movement

    def get_for_update(self, movement_id: int) -> Movement:
        movement = (
            self.db.query(Movement)
            .filter(Movement.id == movement_id)
            .populate_existing()
            .with_for_update()
            .first()
        )
        if movement is None:
            raise NotFound("Movement not found", movement_id=movement_id)
        return movement

    def mark_undone(self, movement_id: int) -> None:
        # Guarded flip: of two racing undos only one matches is_undone = false
        updated = (
            self.db.query(Movement)
            .filter(Movement.id == movement_id, Movement.is_undone == False)  # noqa: E712
            .update({Movement.is_undone: True}, synchronize_session=False)
        )
        if not updated:
            raise Conflict("This movement has already been undone", movement_id=movement_id)

    def query(self, *, product_id: Optional[int] = None, user_id: Optional[int] = None,
              operation_type: Optional[str] = None, start_date: Optional[datetime] = None,
              end_date: Optional[datetime] = None, search: Optional[str] = None,
              sort_by: str = "timestamp", order: str = "desc",
              page: int = 1, page_size: int = 20) -> Tuple[List[Movement], int]:
        query = self.db.query(Movement)

        if product_id is not None:
            query = query.filter(Movement.product_id == product_id)
        if user_id is not None:
            query = query.filter(Movement.user_id == user_id)
        if operation_type:
            query = query.filter(Movement.operation_type == operation_type)
        if start_date is not None:
            query = query.filter(Movement.timestamp >= as_naive_utc(start_date))
        if end_date is not None:
            query = query.filter(Movement.timestamp <= as_naive_utc(end_date))
        if search:
            like = f"%{search}%"
            query = query.filter(or_(
                Movement.details.ilike(like),
                Movement.product_name.ilike(like),
                Movement.username.ilike(like),
            ))

        total = query.count()

        sort_col = SORTABLE_COLUMNS.get((sort_by or "").lower(), Movement.timestamp)
        if order == "asc":
            query = query.order_by(sort_col.asc(), Movement.id.asc())
        else:
            query = query.order_by(sort_col.desc(), Movement.id.desc())

        items = (
            query.options(joinedload(Movement.original_movement))
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return items, total
