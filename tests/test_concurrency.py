"""
Concurrency tests: several threads, each with its own session and
connection, racing against the same product or movement.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

from models.movement import Movement
from models.users import User
from services.errors import Conflict, InvalidInput
from services.products import ProductStore
from services.stock import StockService


def _race(session_factory, workers, action):
    """Run ``action(service, actor)`` in ``workers`` threads released together."""
    barrier = threading.Barrier(workers)
    actor_id = action.actor_id

    def run():
        session = session_factory()
        try:
            actor = session.get(User, actor_id)
            barrier.wait()
            action(StockService(session), actor)
            return "ok"
        except (Conflict, InvalidInput):
            return "rejected"
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(run) for _ in range(workers)]
        return [f.result() for f in futures]


class _Take:
    def __init__(self, actor_id, product_id, amount):
        self.actor_id = actor_id
        self.product_id = product_id
        self.amount = amount

    def __call__(self, service, actor):
        service.take(actor, self.product_id, self.amount)


class _Undo:
    def __init__(self, actor_id, movement_id):
        self.actor_id = actor_id
        self.movement_id = movement_id

    def __call__(self, service, actor):
        service.undo(actor, self.movement_id)


class TestConcurrentTakes:
    def test_takes_never_oversell(self, db, session_factory, admin, make_product):
        product = make_product(quantity=10)

        outcomes = _race(session_factory, 8, _Take(admin.id, product.id, 3))

        # Other sessions did the writes; drop this session's copies
        db.expire_all()
        succeeded = outcomes.count("ok")
        assert succeeded == 10 // 3
        assert outcomes.count("rejected") == 8 - succeeded
        final = ProductStore(db).get(product.id).quantity
        assert final == 10 - 3 * succeeded
        assert final >= 0
        takes = db.query(Movement).filter(Movement.product_id == product.id, Movement.operation_type == "take").all()
        assert len(takes) == succeeded
        # Each take saw the quantity left by the one before it
        assert sorted((m.old_quantity, m.new_quantity) for m in takes) == [(4, 1), (7, 4), (10, 7)]

    def test_takes_within_stock_all_succeed(self, db, session_factory, admin, make_product):
        product = make_product(quantity=12)

        outcomes = _race(session_factory, 6, _Take(admin.id, product.id, 2))

        assert outcomes == ["ok"] * 6
        db.expire_all()
        assert ProductStore(db).get(product.id).quantity == 0


class TestConcurrentUndo:
    def test_only_one_undo_wins(self, db, session_factory, stock, admin, make_product):
        product = make_product(quantity=50)
        taken = stock.take(admin, product.id, 20).movement

        outcomes = _race(session_factory, 4, _Undo(admin.id, taken.id))

        assert outcomes.count("ok") == 1
        assert outcomes.count("rejected") == 3
        db.expire_all()
        assert ProductStore(db).get(product.id).quantity == 50
        undos = db.query(Movement).filter(Movement.original_movement_id == taken.id).all()
        assert len(undos) == 1
        db.refresh(taken)
        assert taken.is_undone is True
