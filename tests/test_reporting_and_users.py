"""Tests for dashboard aggregates and actor management."""

from datetime import timedelta

import pytest

from services.errors import Conflict, InvalidInput, NotFound, Unauthorized
from services.ledger import MovementLedger
from services.products import ProductStore
from services.reporting import ReportingService
from services.stock import StockService
from services.users import UserService
from utils.clock import utcnow


class TestReporting:
    def test_inventory_summary_counts_active_products_only(self, stock, admin, db, make_product):
        make_product(name="Widget A", sku="WGT-001", quantity=100, min_quantity=20)
        make_product(name="Gadget X", sku="GDT-001", quantity=15, min_quantity=25)
        retired = make_product(name="Old", sku="OLD-001", quantity=0, min_quantity=5)
        stock.set_active(admin, retired.id, False)

        summary = ReportingService(db).inventory_summary()

        assert summary == {"total_products": 2, "total_quantity": 115, "low_stock_count": 1}

    def test_empty_inventory(self, db):
        assert ReportingService(db).inventory_summary() == {
            "total_products": 0, "total_quantity": 0, "low_stock_count": 0,
        }

    def test_activity_skips_undone_and_old_movements(self, stock, admin, db, make_product):
        product = make_product(quantity=100)
        taken = stock.take(admin, product.id, 10).movement
        stock.take(admin, product.id, 5)
        stock.undo(admin, taken.id)
        # Outside the 30 day window
        MovementLedger(db).append(
            product_id=product.id, product_name=product.name, user_id=admin.id, username=admin.username,
            operation_type="adjust", quantity_change=0, old_quantity=95, new_quantity=95,
            timestamp=utcnow() - timedelta(days=31),
        )
        db.commit()

        activity = ReportingService(db).activity_summary()

        assert activity["window_days"] == 30
        assert activity["by_type"] == {"add": 1, "take": 1, "undo": 1}
        assert activity["total_movements"] == 3

    def test_top_movers_ranking(self, stock, admin, db, make_product):
        products = [make_product(name=f"P{i}", sku=f"P-{i}", quantity=100) for i in range(7)]
        # P3 gets the most activity, P5 second; the rest tie on their add movement
        for _ in range(3):
            stock.take(admin, products[3].id, 1)
        stock.take(admin, products[5].id, 1)

        movers = ReportingService(db).top_movers()

        assert len(movers) == 5
        assert movers[0] == {"product_id": products[3].id, "product_name": "P3", "count": 4}
        assert movers[1]["product_id"] == products[5].id
        tied = [m["product_id"] for m in movers[2:]]
        assert tied == sorted(tied)
        assert tied == [products[0].id, products[1].id, products[2].id]

    def test_stats_shape(self, db, make_product):
        make_product(quantity=15, min_quantity=25)
        stats = ReportingService(db).stats()
        assert set(stats) == {"inventory", "activity", "top_movers"}
        assert stats["inventory"]["low_stock_count"] == 1


class TestUserService:
    def test_create_and_authenticate(self, db):
        service = UserService(db)
        created = service.create(username="alice", password="s3cret")

        assert created.role == "user"
        assert created.password_hash != "s3cret"
        assert service.authenticate("alice", "s3cret").id == created.id
        with pytest.raises(Unauthorized):
            service.authenticate("alice", "wrong")
        with pytest.raises(Unauthorized):
            service.authenticate("nobody", "s3cret")

    def test_unknown_role_becomes_user(self, db):
        assert UserService(db).create(username="bob", password="x", role="superuser").role == "user"

    def test_duplicate_username(self, db, user):
        with pytest.raises(Conflict):
            UserService(db).create(username="user", password="another")

    def test_missing_fields(self, db):
        with pytest.raises(InvalidInput):
            UserService(db).create(username=" ", password="x")

    def test_inactive_user_cannot_authenticate(self, db, admin, user):
        service = UserService(db)
        service.update(user.id, is_active=False)
        with pytest.raises(Unauthorized):
            service.authenticate("user", "user123")

    def test_last_admin_cannot_be_deactivated(self, db, admin):
        service = UserService(db)
        with pytest.raises(Conflict):
            service.update(admin.id, is_active=False)
        db.refresh(admin)
        assert admin.is_active is True
        assert admin.role == "admin"

    def test_last_admin_cannot_be_demoted(self, db, admin):
        with pytest.raises(Conflict):
            UserService(db).update(admin.id, role="user")
        db.refresh(admin)
        assert admin.role == "admin"

    def test_admin_can_be_deactivated_when_another_remains(self, db, admin):
        service = UserService(db)
        second = service.create(username="root", password="x", role="admin")

        updated = service.update(admin.id, is_active=False)
        assert updated.is_active is False
        # Now root is the last one
        with pytest.raises(Conflict):
            service.update(second.id, role="user")

    def test_rename_and_username_collision(self, db, admin, user):
        service = UserService(db)
        assert service.update(user.id, username="carol").username == "carol"
        with pytest.raises(Conflict):
            service.update(user.id, username="admin")

    def test_update_missing_user(self, db):
        with pytest.raises(NotFound):
            UserService(db).update(999, role="admin")

    def test_change_and_reset_password(self, db, user):
        service = UserService(db)
        with pytest.raises(Unauthorized):
            service.change_password(user, "wrong", "new-pass")

        service.change_password(user, "user123", "new-pass")
        assert service.authenticate("user", "new-pass").id == user.id

        service.reset_password(user.id, "reset-pass")
        assert service.authenticate("user", "reset-pass").id == user.id

    def test_username_taken_between_check_and_write(self, db, user, monkeypatch):
        service = UserService(db)
        carol = service.create(username="carol", password="x")
        # The lookup misses a row another request committed in the meantime
        monkeypatch.setattr(UserService, "get_by_username", lambda self, username: None)

        with pytest.raises(Conflict, match="Username already exists"):
            service.create(username="user", password="another")
        with pytest.raises(Conflict, match="Username already exists"):
            service.update(carol.id, username="user")

        db.refresh(carol)
        assert carol.username == "carol"
        assert [u.username for u in service.list_users()] == ["user", "carol"]


class TestExplicitLimits:
    def test_zero_top_limit_is_respected(self, db, make_product):
        make_product(quantity=5)
        assert ReportingService(db, top_limit=0).top_movers() == []
        assert len(ReportingService(db).top_movers()) == 1

    def test_zero_attempts_never_writes(self, db, admin, make_product):
        product = make_product(quantity=5)
        with pytest.raises(Conflict):
            StockService(db, cas_attempts=0).take(admin, product.id, 1)
        assert ProductStore(db).get(product.id).quantity == 5
