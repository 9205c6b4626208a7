"""Tests for the movement ledger queries and the product store."""

from datetime import timedelta

import pytest

from models.movement import Movement
from services.errors import Conflict, NotFound
from services.ledger import MovementLedger
from services.products import ProductStore
from utils.clock import utcnow


@pytest.fixture()
def history(stock, admin, user, make_product):
    """Two products with a handful of movements by two actors."""
    widget = make_product(name="Widget A", sku="WGT-001", quantity=100)
    gadget = make_product(name="Gadget X", sku="GDT-001", quantity=15, min_quantity=25, category="Gadgets")
    stock.take(user, widget.id, 10, details="Order 42")
    stock.take(user, gadget.id, 5)
    stock.adjust(admin, widget.id, -3, details="Damaged in transit")
    return widget, gadget


class TestMovementLedger:
    def test_filters(self, db, history, user):
        widget, gadget = history
        ledger = MovementLedger(db)

        items, total = ledger.query(product_id=widget.id)
        assert total == 3
        assert {m.product_id for m in items} == {widget.id}

        items, total = ledger.query(user_id=user.id)
        assert total == 2
        assert all(m.username == "user" for m in items)

        items, total = ledger.query(operation_type="adjust")
        assert [m.details for m in items] == ["Damaged in transit"]

    def test_search_covers_details_product_and_username(self, db, history):
        ledger = MovementLedger(db)
        assert ledger.query(search="order")[1] == 1
        assert ledger.query(search="gadget")[1] == 2
        assert ledger.query(search="admin")[1] == 3

    def test_time_range(self, db, history):
        ledger = MovementLedger(db)
        now = utcnow()
        assert ledger.query(start_date=now - timedelta(hours=1))[1] == 5
        assert ledger.query(end_date=now - timedelta(hours=1))[1] == 0

    def test_default_sort_is_newest_first_and_paged(self, db, history):
        ledger = MovementLedger(db)
        items, total = ledger.query(page=1, page_size=2)
        assert total == 5
        assert len(items) == 2
        ids = [m.id for m in ledger.query(page_size=50)[0]]
        assert ids == sorted(ids, reverse=True)

        oldest_first = [m.id for m in ledger.query(sort_by="timestamp", order="asc", page_size=50)[0]]
        assert oldest_first == sorted(ids)

    def test_mark_undone_only_once(self, db, history):
        ledger = MovementLedger(db)
        movement = ledger.query(operation_type="take")[0][0]

        ledger.mark_undone(movement.id)
        with pytest.raises(Conflict):
            ledger.mark_undone(movement.id)
        db.rollback()

    def test_timestamps_are_naive_utc(self, db, history):
        assert Movement.__table__.c.timestamp.type.timezone is False
        movement = MovementLedger(db).query(page_size=1)[0][0]
        db.refresh(movement)
        assert movement.timestamp.tzinfo is None
        assert abs(utcnow() - movement.timestamp) < timedelta(minutes=5)

    def test_get_missing(self, db):
        with pytest.raises(NotFound):
            MovementLedger(db).get(1)

    def test_undo_items_carry_original(self, db, stock, admin, history):
        widget, _ = history
        taken = MovementLedger(db).query(product_id=widget.id, operation_type="take")[0][0]
        stock.undo(admin, taken.id)

        undo = MovementLedger(db).query(operation_type="undo")[0][0]
        assert undo.original_movement.id == taken.id
        assert undo.original_movement.operation_type == "take"
        assert undo.original_movement.quantity_change == -10


class TestProductStore:
    def test_low_stock_is_derived(self, db, make_product):
        low = make_product(name="Gadget X", sku="GDT-001", quantity=15, min_quantity=25)
        edge = make_product(name="Edge", sku="EDG-001", quantity=25, min_quantity=25)
        fine = make_product(name="Widget A", sku="WGT-001", quantity=100, min_quantity=20)

        assert low.is_low_stock is True
        assert edge.is_low_stock is True
        assert fine.is_low_stock is False

        items, total = ProductStore(db).query(low_stock=True)
        assert total == 2
        assert {p.sku for p in items} == {"GDT-001", "EDG-001"}

    def test_search_category_and_active_filters(self, db, stock, admin, make_product):
        widget = make_product(name="Widget A", sku="WGT-001", category="Widgets")
        make_product(name="Cable USB-C", sku="CBL-001", category="Cables")
        stock.set_active(admin, widget.id, False)
        store = ProductStore(db)

        assert store.query(search="wgt")[1] == 1
        assert store.query(search="cable")[1] == 1
        assert store.query(category="Cables")[1] == 1
        assert [p.sku for p in store.query(is_active=True)[0]] == ["CBL-001"]
        assert [p.sku for p in store.query(is_active=False)[0]] == ["WGT-001"]

    def test_sorting_and_paging(self, db, make_product):
        make_product(name="B", sku="B-1", quantity=5)
        make_product(name="A", sku="A-1", quantity=50)
        make_product(name="C", sku="C-1", quantity=1)
        store = ProductStore(db)

        assert [p.name for p in store.query()[0]] == ["A", "B", "C"]
        assert [p.name for p in store.query(sort_by="quantity", order="desc")[0]] == ["A", "B", "C"]
        items, total = store.query(sort_by="quantity", page=2, page_size=2)
        assert total == 3
        assert [p.name for p in items] == ["A"]
        # Unknown columns fall back to name
        assert [p.name for p in store.query(sort_by="nope")[0]] == ["A", "B", "C"]

    def test_set_quantity_is_compare_and_swap(self, db, make_product):
        product = make_product(quantity=10)
        store = ProductStore(db)
        fresh = store.get_for_update(product.id)

        assert store.set_quantity(fresh, 7) is True
        assert fresh.quantity == 7

        # Simulate a copy read before the change above
        db.expire(fresh)
        stale = store.get(product.id)
        db.query(type(stale)).filter_by(id=product.id).update({"quantity": 3}, synchronize_session=False)
        assert store.set_quantity(stale, 1) is False
        db.rollback()

    def test_categories(self, db, make_product):
        make_product(name="A", sku="A-1", category="Widgets")
        make_product(name="B", sku="B-1", category="Cables")
        make_product(name="C", sku="C-1", category=None)
        assert ProductStore(db).categories() == ["Cables", "Widgets"]
