import logging
import sqlite3
import json
from typing import List, Optional
from datetime import datetime
from decimal import Decimal

from .config import DATABASE_URL
from .errors import PersistenceError
from .models import Order, OrderItem
from .status import OrderStatus

logger = logging.getLogger(__name__)


class OrderDB:
    def __init__(self, db_path: str = DATABASE_URL):
        self.db_path = db_path
        self.init_database()

    def init_database(self):
        try:
            with sqlite3.connect(self.db_path) as conn:
                cursor = conn.cursor()

                # Create orders table
                cursor.execute('''
                    CREATE TABLE IF NOT EXISTS orders (
                        id TEXT PRIMARY KEY,
                        customer_id TEXT NOT NULL,
                        items TEXT NOT NULL,
                        status INTEGER NOT NULL,
                        total TEXT NOT NULL,
                        created_at TIMESTAMP NOT NULL,
                        updated_at TIMESTAMP NOT NULL
                    )
                ''')

                cursor.execute('CREATE INDEX IF NOT EXISTS idx_orders_customer_id ON orders(customer_id)')
                cursor.execute('CREATE INDEX IF NOT EXISTS idx_orders_status ON orders(status)')
                cursor.execute('CREATE INDEX IF NOT EXISTS idx_orders_created_at ON orders(created_at)')

                conn.commit()
                logger.info("Orders database initialized successfully")

        except sqlite3.Error as e:
            logger.error(f"Database initialization error: {e}")
            raise PersistenceError(f"database initialization failed: {e}") from e

    def get_connection(self):
        return sqlite3.connect(self.db_path)

    def _order_from_row(self, row) -> Optional[Order]:
        if not row:
            return None

        items_data = json.loads(row[2])
        items = [OrderItem(**item) for item in items_data]

        return Order(
            id=row[0],
            customer_id=row[1],
            items=items,
            status=OrderStatus(row[3]),
            total=Decimal(row[4]),
            created_at=datetime.fromisoformat(row[5]),
            updated_at=datetime.fromisoformat(row[6])
        )

    @staticmethod
    def _items_json(items: List[OrderItem]) -> str:
        return json.dumps([item.model_dump(mode="json") for item in items])

    def get_all(self) -> List[Order]:
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute('SELECT * FROM orders ORDER BY created_at DESC')
                rows = cursor.fetchall()

                return [self._order_from_row(row) for row in rows if row]

        except sqlite3.Error as e:
            logger.error(f"Error getting all orders: {e}")
            raise PersistenceError(f"listing orders failed: {e}") from e

    def get_by_id(self, order_id: str) -> Optional[Order]:
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    'SELECT * FROM orders WHERE id = ?',
                    (order_id,)
                )
                row = cursor.fetchone()
                return self._order_from_row(row)

        except sqlite3.Error as e:
            logger.error(f"Error getting order by ID {order_id}: {e}")
            raise PersistenceError(f"loading order {order_id} failed: {e}") from e

    def get_by_status(self, status: OrderStatus) -> List[Order]:
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    'SELECT * FROM orders WHERE status = ? ORDER BY created_at DESC',
                    (int(status),)
                )
                rows = cursor.fetchall()

                return [self._order_from_row(row) for row in rows if row]

        except sqlite3.Error as e:
            logger.error(f"Error getting orders with status {status.name}: {e}")
            raise PersistenceError(f"listing {status.name} orders failed: {e}") from e

    def create(self, order: Order) -> Order:
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()

                cursor.execute('''
                    INSERT INTO orders (id, customer_id, items, status, total, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                ''', (
                    order.id,
                    order.customer_id,
                    self._items_json(order.items),
                    int(order.status),
                    str(order.total),
                    order.created_at.isoformat(),
                    order.updated_at.isoformat()
                ))

                conn.commit()
                logger.info(f"Order created: {order.id} for customer: {order.customer_id}")

                return order

        except sqlite3.Error as e:
            logger.error(f"Error creating order: {e}")
            raise PersistenceError(f"creating order {order.id} failed: {e}") from e

    def update(self, order_id: str, order: Order) -> bool:
        """Overwrite the mutable fields of an order. Status and created_at are left alone."""
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()

                cursor.execute('''
                    UPDATE orders
                    SET customer_id = ?, items = ?, total = ?, updated_at = ?
                    WHERE id = ?
                ''', (
                    order.customer_id,
                    self._items_json(order.items),
                    str(order.total),
                    order.updated_at.isoformat(),
                    order_id
                ))

                conn.commit()

                updated = cursor.rowcount > 0
                if updated:
                    logger.info(f"Order updated: {order_id}")
                return updated

        except sqlite3.Error as e:
            logger.error(f"Error updating order {order_id}: {e}")
            raise PersistenceError(f"updating order {order_id} failed: {e}") from e

    def update_status(self, order_id: str, new_status: OrderStatus, updated_at: datetime) -> bool:
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()

                cursor.execute('''
                    UPDATE orders
                    SET status = ?, updated_at = ?
                    WHERE id = ?
                ''', (int(new_status), updated_at.isoformat(), order_id))

                conn.commit()

                updated = cursor.rowcount > 0
                if updated:
                    logger.info(f"Order status updated: {order_id} -> {new_status.name}")
                return updated

        except sqlite3.Error as e:
            logger.error(f"Error updating order status {order_id}: {e}")
            raise PersistenceError(f"updating status of order {order_id} failed: {e}") from e
