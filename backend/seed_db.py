import os
import sys

# Add 'backend' folder to Python path
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from database import SessionLocal, init_db
from models.product import Product
from services.stock import StockService
from services.users import UserService

# Configuration
DEFAULT_USERS = [
    {"username": "admin", "password": "admin123", "role": "admin"},
    {"username": "user", "password": "user123", "role": "user"},
]

SAMPLE_PRODUCTS = [
    {"name": "Widget A", "sku": "WGT-001", "quantity": 100, "unit": "pcs", "min_quantity": 20, "category": "Widgets"},
    {"name": "Widget B", "sku": "WGT-002", "quantity": 50, "unit": "pcs", "min_quantity": 10, "category": "Widgets"},
    {"name": "Gadget X", "sku": "GDT-001", "quantity": 15, "unit": "pcs", "min_quantity": 25, "category": "Gadgets"},
    {"name": "Cable USB-C", "sku": "CBL-001", "quantity": 200, "unit": "pcs", "min_quantity": 50, "category": "Cables"},
    {"name": "Power Supply", "sku": "PWR-001", "quantity": 30, "unit": "pcs", "min_quantity": 10, "category": "Electronics"},
]
# End Configuration


def seed(session):
    """Create default accounts and sample products that do not exist yet."""
    users = UserService(session)
    for data in DEFAULT_USERS:
        if users.get_by_username(data["username"]) is None:
            users.create(**data)
            print(f"Created user: {data['username']}")

    admin = users.get_by_username("admin")
    stock = StockService(session)
    for data in SAMPLE_PRODUCTS:
        if session.query(Product).filter(Product.sku == data["sku"]).first() is None:
            # Goes through the stock service so initial stock shows up as an add movement
            stock.create_product(admin, **data)
            print(f"Created product: {data['name']}")


if __name__ == "__main__":
    init_db()
    session = SessionLocal()
    try:
        seed(session)
    finally:
        session.close()

    print("Seeding completed!")
    print("Default credentials:")
    for data in DEFAULT_USERS:
        print(f"  {data['role'].title()}: {data['username']} / {data['password']}")
