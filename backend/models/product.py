# backend/models/product.py
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, String, func
from sqlalchemy.ext.hybrid import hybrid_property
from database import Base

# Model Product
# A single stock-keeping unit. Holds the current quantity and the
# threshold used to flag low stock, plus descriptive metadata.
# Products are never deleted, only deactivated.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    sku = Column(String, unique=True, nullable=False, index=True)

    # Stock state, guarded by constraints.
    quantity = Column(Integer, CheckConstraint("quantity >= 0", name="ck_products_quantity"), nullable=False, default=0)
    min_quantity = Column(Integer, CheckConstraint("min_quantity >= 0", name="ck_products_min_quantity"), nullable=False, default=0)
    unit = Column(String, nullable=False, default="pcs")

    category = Column(String, index=True)
    location = Column(String)
    notes = Column(String)

    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Derived on every read; the SQL form compares the two columns.
    @hybrid_property
    def is_low_stock(self):
        return self.quantity <= self.min_quantity
