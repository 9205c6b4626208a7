# backend/services/stock.py
"""
Stock mutation engine.

Every operation here follows the same shape inside one database
transaction:

    1. read the product row under a lock
    2. validate against the quantity just read
    3. compare-and-swap the new quantity (retrying from 1 if the row moved)
    4. append the movement (and, for undo, flip the original's flag)

If any step raises, the transaction is rolled back and neither the
product nor the ledger changes.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from sqlalchemy.orm import Session

from config import settings
from database import transaction
from models.movement import Movement, OperationType, REVERSIBLE_OPERATIONS
from models.product import Product
from models.users import User
from services.errors import Conflict, InvalidInput
from services.ledger import MovementLedger
from services.products import ProductStore

logger = logging.getLogger(__name__)


@dataclass
class StockResult:
    product: Product
    movement: Optional[Movement]


def _require_int(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(f"{field} must be an integer")
    return value


class StockService:
    def __init__(self, db: Session, cas_attempts: Optional[int] = None):
        self.db = db
        self.products = ProductStore(db)
        self.ledger = MovementLedger(db)
        self.cas_attempts = cas_attempts if cas_attempts is not None else settings.STOCK_CAS_ATTEMPTS

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create_product(self, actor: User, *, name: str, sku: str, quantity: int = 0,
                       unit: str = "pcs", min_quantity: int = 0, category: Optional[str] = None,
                       location: Optional[str] = None, notes: Optional[str] = None) -> StockResult:
        """Create a product; a positive starting quantity is recorded as an ``add`` movement."""
        quantity = _require_int(quantity, "Quantity")
        min_quantity = _require_int(min_quantity, "Minimum quantity")

        with transaction(self.db):
            product = self.products.create(
                name=name, sku=sku, quantity=quantity, unit=unit, min_quantity=min_quantity,
                category=category, location=location, notes=notes,
            )
            movement = None
            if quantity > 0:
                movement = self._record(
                    product, actor, OperationType.ADD, quantity, old_quantity=0,
                    details="Initial stock on product creation",
                )

        logger.info("Created product %s (sku=%s, quantity=%s) by %s", product.id, product.sku, quantity, actor.username)
        return StockResult(product, movement)

    def update_product(self, actor: User, product_id: int, fields: dict) -> StockResult:
        """Edit descriptive fields. Always records an ``edit`` movement with no quantity change."""
        with transaction(self.db):
            product = self.products.get_for_update(product_id)
            self.products.update(product, fields)
            movement = self._record(
                product, actor, OperationType.EDIT, 0, old_quantity=product.quantity,
                details="Product details updated",
            )

        logger.info("Product %s edited by %s", product_id, actor.username)
        return StockResult(product, movement)

    def take(self, actor: User, product_id: int, amount: int, details: Optional[str] = None) -> StockResult:
        amount = _require_int(amount, "Quantity")
        if amount <= 0:
            raise InvalidInput("Quantity must be a positive number")

        def compute(product: Product) -> int:
            if not product.is_active:
                raise Conflict("Cannot take from inactive product", product_id=product.id)
            if amount > product.quantity:
                raise Conflict(
                    "Cannot take more than available stock",
                    product_id=product.id, available=product.quantity, requested=amount,
                )
            return product.quantity - amount

        with transaction(self.db):
            product, old_quantity = self._swap_quantity(product_id, compute)
            movement = self._record(product, actor, OperationType.TAKE, -amount, old_quantity, details)

        logger.info("Took %s from product %s (%s -> %s) by %s",
                    amount, product_id, old_quantity, movement.new_quantity, actor.username)
        return StockResult(product, movement)

    def adjust(self, actor: User, product_id: int, delta: int, details: Optional[str] = None) -> StockResult:
        delta = _require_int(delta, "Quantity")

        def compute(product: Product) -> int:
            new_quantity = product.quantity + delta
            if new_quantity < 0:
                raise Conflict(
                    "Adjustment would result in negative stock",
                    product_id=product.id, current=product.quantity, change=delta,
                )
            return new_quantity

        with transaction(self.db):
            product, old_quantity = self._swap_quantity(product_id, compute)
            movement = self._record(product, actor, OperationType.ADJUST, delta, old_quantity, details)

        logger.info("Adjusted product %s by %s (%s -> %s) by %s",
                    product_id, delta, old_quantity, movement.new_quantity, actor.username)
        return StockResult(product, movement)

    def set_active(self, actor: User, product_id: int, is_active: bool) -> Product:
        if not isinstance(is_active, bool):
            raise InvalidInput("is_active must be a boolean")
        with transaction(self.db):
            product = self.products.get_for_update(product_id)
            self.products.set_active(product, is_active)

        logger.info("Product %s %s by %s", product_id, "activated" if is_active else "deactivated", actor.username)
        return product

    def undo(self, actor: User, movement_id: int) -> StockResult:
        """
        Reverse an add, take or adjust movement.

        The reversal is computed against the product's current quantity,
        not the snapshot on the original movement. The original is never
        edited beyond its ``is_undone`` flag; a new ``undo`` movement
        pointing back at it is appended instead.
        """
        with transaction(self.db):
            original = self.ledger.get_for_update(movement_id)
            if original.is_undone:
                raise Conflict("This movement has already been undone", movement_id=movement_id)
            if original.operation_type not in REVERSIBLE_OPERATIONS:
                raise Conflict("Cannot undo this type of operation", movement_id=movement_id,
                               operation_type=original.operation_type)

            reversal = -original.quantity_change

            def compute(product: Product) -> int:
                new_quantity = product.quantity + reversal
                if new_quantity < 0:
                    raise Conflict(
                        f"Cannot undo: would result in negative stock "
                        f"(current: {product.quantity}, change: {reversal})",
                        movement_id=movement_id, current=product.quantity, change=reversal,
                    )
                return new_quantity

            # Validate before the first write
            compute(self.products.get_for_update(original.product_id))

            self.ledger.mark_undone(original.id)
            product, old_quantity = self._swap_quantity(original.product_id, compute)
            movement = self._record(
                product, actor, OperationType.UNDO, reversal, old_quantity,
                details=f"Undo of {original.operation_type} operation (ID: {original.id})",
                original_movement_id=original.id,
            )

        logger.info("Undid movement %s on product %s (%s -> %s) by %s",
                    movement_id, product.id, old_quantity, movement.new_quantity, actor.username)
        return StockResult(product, movement)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _swap_quantity(self, product_id: int, compute: Callable[[Product], int]) -> Tuple[Product, int]:
        """
        Lock-read the product, let ``compute`` validate and return the new
        quantity, then compare-and-swap it in. A lost race re-reads the
        committed quantity and validates again.
        """
        for attempt in range(1, self.cas_attempts + 1):
            product = self.products.get_for_update(product_id)
            old_quantity = product.quantity
            new_quantity = compute(product)
            if self.products.set_quantity(product, new_quantity):
                return product, old_quantity
            logger.warning("Quantity of product %s changed concurrently (attempt %s/%s)",
                           product_id, attempt, self.cas_attempts)
        raise Conflict("Stock level changed concurrently, please retry", product_id=product_id)

    def _record(self, product: Product, actor: User, operation: OperationType, change: int,
                old_quantity: int, details: Optional[str] = None,
                original_movement_id: Optional[int] = None) -> Movement:
        return self.ledger.append(
            product_id=product.id,
            product_name=product.name,
            user_id=actor.id,
            username=actor.username,
            operation_type=operation.value,
            quantity_change=change,
            old_quantity=old_quantity,
            new_quantity=old_quantity + change,
            details=details or None,
            original_movement_id=original_movement_id,
        )
