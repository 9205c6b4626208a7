"""Shared fixtures: a fresh file-backed SQLite database per test."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

import models.log  # noqa: F401
import models.movement  # noqa: F401
import models.product  # noqa: F401
import models.users  # noqa: F401
from database import Base, get_db
from main import app
from services.stock import StockService
from services.users import UserService
from utils.auth import token_for


@pytest.fixture()
def engine(tmp_path):
    # A file, not :memory:, so every thread gets its own connection
    engine = create_engine(
        f"sqlite:///{tmp_path / 'inventory.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture()
def admin(db):
    return UserService(db).create(username="admin", password="admin123", role="admin")


@pytest.fixture()
def user(db):
    return UserService(db).create(username="user", password="user123", role="user")


@pytest.fixture()
def stock(db):
    return StockService(db)


@pytest.fixture()
def make_product(stock, admin):
    """Helper: create a product through the stock service and return it."""

    def _make(**overrides):
        data = {"name": "Widget A", "sku": "WGT-001", "quantity": 100, "min_quantity": 20, "category": "Widgets"}
        data.update(overrides)
        return stock.create_product(admin, **data).product

    return _make


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def admin_headers(admin):
    return {"Authorization": f"Bearer {token_for(admin)}"}


@pytest.fixture()
def user_headers(user):
    return {"Authorization": f"Bearer {token_for(user)}"}
