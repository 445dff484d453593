import sqlite3
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from order_service.database import OrderDB
from order_service.errors import PersistenceError
from order_service.models import Order
from order_service.status import OrderStatus

from fakes import make_items


def _order(order_id="o-1", status=OrderStatus.RECEIVED):
    now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
    return Order(
        id=order_id,
        customer_id="customer-1",
        items=make_items(("p1", 2, "1.25")),
        status=status,
        total=Decimal("2.50"),
        created_at=now,
        updated_at=now,
    )


class TestOrderDB:

    def test_create_and_load(self, repo):
        repo.create(_order())

        stored = repo.get_by_id("o-1")
        assert stored == _order()
        assert isinstance(stored.total, Decimal)

    def test_status_is_stored_as_code(self, repo):
        repo.create(_order(status=OrderStatus.PAYED))

        with sqlite3.connect(repo.db_path) as conn:
            (code,) = conn.execute("SELECT status FROM orders WHERE id = 'o-1'").fetchone()
        assert code == 2

    def test_missing_order_is_none(self, repo):
        assert repo.get_by_id("missing") is None

    def test_duplicate_id_is_persistence_error(self, repo):
        repo.create(_order())
        with pytest.raises(PersistenceError):
            repo.create(_order())

    def test_update_status_only_touches_status(self, repo):
        repo.create(_order())
        later = datetime(2024, 1, 2, tzinfo=timezone.utc)

        assert repo.update_status("o-1", OrderStatus.PAYMENT_PENDING, later)

        stored = repo.get_by_id("o-1")
        assert stored.status == OrderStatus.PAYMENT_PENDING
        assert stored.updated_at == later
        assert stored.total == Decimal("2.50")

    def test_update_missing_rows(self, repo):
        assert repo.update("missing", _order("missing")) is False
        assert repo.update_status("missing", OrderStatus.PAYED, datetime.now(timezone.utc)) is False

    def test_get_by_status(self, repo):
        repo.create(_order("o-1"))
        repo.create(_order("o-2", OrderStatus.PAYED))

        assert [o.id for o in repo.get_by_status(OrderStatus.PAYED)] == ["o-2"]
        assert repo.get_by_status(OrderStatus.COMPLETED) == []
        assert {o.id for o in repo.get_all()} == {"o-1", "o-2"}

    def test_unusable_path(self, tmp_path):
        with pytest.raises(PersistenceError):
            OrderDB(str(tmp_path / "missing-dir" / "orders.db"))
