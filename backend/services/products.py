# backend/services/products.py
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.product import Product
from services.errors import Conflict, InvalidInput, NotFound

# Columns a caller may change through create/update. Quantity is not one
# of them: it only moves through the stock service.
EDITABLE_FIELDS = ("name", "sku", "unit", "min_quantity", "category", "location", "notes")

SORTABLE_COLUMNS = {
    "id": Product.id,
    "name": Product.name,
    "sku": Product.sku,
    "quantity": Product.quantity,
    "min_quantity": Product.min_quantity,
    "category": Product.category,
    "location": Product.location,
    "created_at": Product.created_at,
    "updated_at": Product.updated_at,
}


def _norm_sku(sku: Optional[str]) -> Optional[str]:
    if sku is None:
        return None
    s = sku.strip()
    return s if s else None


class ProductStore:
    """Current stock state per product, backed by the ``products`` table."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, product_id: int) -> Product:
        product = self.db.query(Product).filter(Product.id == product_id).first()
        if product is None:
            raise NotFound("Product not found", product_id=product_id)
        return product

    def get_for_update(self, product_id: int) -> Product:
        """Load the row under a lock, discarding any stale copy in the session."""
        product = (
            self.db.query(Product)
            .filter(Product.id == product_id)
            .populate_existing()
            .with_for_update()
            .first()
        )
        if product is None:
            raise NotFound("Product not found", product_id=product_id)
        return product

    def sku_taken(self, sku: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(Product.id).filter(Product.sku == sku)
        if exclude_id is not None:
            query = query.filter(Product.id != exclude_id)
        return query.first() is not None

    def create(self, *, name: str, sku: str, quantity: int = 0, unit: str = "pcs",
               min_quantity: int = 0, category: Optional[str] = None,
               location: Optional[str] = None, notes: Optional[str] = None) -> Product:
        name = (name or "").strip()
        sku = _norm_sku(sku)
        if not name or not sku:
            raise InvalidInput("Name and SKU are required")
        if quantity < 0 or min_quantity < 0:
            raise InvalidInput("Quantities cannot be negative")
        if self.sku_taken(sku):
            raise Conflict("SKU already exists", sku=sku)

        product = Product(
            name=name, sku=sku, quantity=quantity, unit=unit or "pcs",
            min_quantity=min_quantity, category=category, location=location,
            notes=notes, is_active=True,
        )
        self.db.add(product)
        self._flush_unique(sku)
        return product

    def update(self, product: Product, fields: dict) -> Product:
        """Apply the supplied editable fields; ``None`` values are ignored."""
        changes = {k: v for k, v in fields.items() if k in EDITABLE_FIELDS and v is not None}

        if "name" in changes:
            changes["name"] = changes["name"].strip()
            if not changes["name"]:
                raise InvalidInput("Name cannot be empty")
        if "sku" in changes:
            sku = _norm_sku(changes["sku"])
            if sku is None:
                raise InvalidInput("SKU cannot be empty")
            if sku != product.sku and self.sku_taken(sku, exclude_id=product.id):
                raise Conflict("SKU already exists", sku=sku)
            changes["sku"] = sku
        if changes.get("min_quantity", 0) < 0:
            raise InvalidInput("Minimum quantity cannot be negative")

        for key, value in changes.items():
            setattr(product, key, value)
        self._flush_unique(product.sku)
        return product

    def set_quantity(self, product: Product, new_quantity: int) -> bool:
        """
        Compare-and-swap the quantity from the value ``product`` was read
        with to ``new_quantity``. Returns False if another transaction has
        changed the row in between. Callers validate non-negativity first.
        """
        updated = (
            self.db.query(Product)
            .filter(Product.id == product.id, Product.quantity == product.quantity)
            .update({Product.quantity: new_quantity}, synchronize_session=False)
        )
        if not updated:
            return False
        self.db.refresh(product)
        return True

    def set_active(self, product: Product, is_active: bool) -> Product:
        product.is_active = is_active
        self.db.flush()
        return product

    def query(self, *, search: Optional[str] = None, category: Optional[str] = None,
              is_active: Optional[bool] = None, low_stock: bool = False,
              sort_by: str = "name", order: str = "asc",
              page: int = 1, page_size: int = 20) -> Tuple[List[Product], int]:
        query = self.db.query(Product)

        # Search by name or SKU
        if search:
            like = f"%{search}%"
            query = query.filter(or_(Product.name.ilike(like), Product.sku.ilike(like)))
        if category:
            query = query.filter(Product.category == category)
        if is_active is not None:
            query = query.filter(Product.is_active == is_active)
        if low_stock:
            query = query.filter(Product.is_low_stock)

        sort_col = SORTABLE_COLUMNS.get((sort_by or "").lower(), Product.name)
        if order == "desc":
            query = query.order_by(sort_col.desc(), Product.id.desc())
        else:
            query = query.order_by(sort_col.asc(), Product.id.asc())

        total = query.count()
        items = query.offset((page - 1) * page_size).limit(page_size).all()
        return items, total

    def categories(self) -> List[str]:
        values = (
            self.db.query(Product.category)
            .distinct()
            .filter(Product.category.isnot(None), Product.category != "")
            .order_by(Product.category)
            .all()
        )
        return [v[0] for v in values]

    def _flush_unique(self, sku: str) -> None:
        # The unique index catches a concurrent insert of the same sku
        try:
            self.db.flush()
        except IntegrityError as e:
            if "sku" not in str(e.orig).lower():
                raise
            raise Conflict("SKU already exists", sku=sku) from e
