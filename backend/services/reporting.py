# backend/services/reporting.py
from datetime import timedelta
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from config import settings
from models.movement import Movement
from models.product import Product
from utils.clock import utcnow


class ReportingService:
    """Read-only views over products and movements, computed on every call."""

    def __init__(self, db: Session, window_days: Optional[int] = None, top_limit: Optional[int] = None):
        self.db = db
        self.window_days = window_days if window_days is not None else settings.ACTIVITY_WINDOW_DAYS
        self.top_limit = top_limit if top_limit is not None else settings.TOP_MOVERS_LIMIT

    def inventory_summary(self) -> Dict[str, int]:
        active = self.db.query(Product).filter(Product.is_active == True)  # noqa: E712

        total_products = active.count()
        total_quantity = (
            self.db.query(func.coalesce(func.sum(Product.quantity), 0))
            .filter(Product.is_active == True)  # noqa: E712
            .scalar()
        )
        low_stock_count = active.filter(Product.is_low_stock).count()

        return {
            "total_products": total_products,
            "total_quantity": int(total_quantity or 0),
            "low_stock_count": low_stock_count,
        }

    def activity_summary(self) -> Dict[str, object]:
        rows = (
            self._recent_movements(Movement.operation_type, func.count(Movement.id))
            .group_by(Movement.operation_type)
            .all()
        )
        by_type = {operation_type: count for operation_type, count in rows}
        return {
            "window_days": self.window_days,
            "total_movements": sum(by_type.values()),
            "by_type": by_type,
        }

    def top_movers(self) -> List[Dict[str, object]]:
        movement_count = func.count(Movement.id).label("count")
        rows = (
            self._recent_movements(Movement.product_id, Product.name, movement_count)
            .join(Product, Product.id == Movement.product_id)
            .group_by(Movement.product_id, Product.name)
            .order_by(movement_count.desc(), Movement.product_id.asc())
            .limit(self.top_limit)
            .all()
        )
        return [
            {"product_id": product_id, "product_name": name, "count": count}
            for product_id, name, count in rows
        ]

    def stats(self) -> Dict[str, object]:
        return {
            "inventory": self.inventory_summary(),
            "activity": self.activity_summary(),
            "top_movers": self.top_movers(),
        }

    def _recent_movements(self, *columns):
        since = utcnow() - timedelta(days=self.window_days)
        return (
            self.db.query(*columns)
            .select_from(Movement)
            .filter(Movement.timestamp >= since, Movement.is_undone == False)  # noqa: E712
        )
