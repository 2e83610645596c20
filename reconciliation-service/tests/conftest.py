import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("WEBHOOK_TOKEN", "test-token")

import asyncio
import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import StaticPool
from reconciler.exceptions import DuplicateTransactionError
from reconciler.models import Base, Order, OrderStatus, Provider, Transaction, TransactionStatus

BASE_TIME = datetime(2024, 12, 25, 9, 0, 0)


def build_order(order_id, amount, payment_method=Provider.BKASH, minutes=0, status=OrderStatus.PENDING):
    return Order(
        order_id=order_id,
        customer_name=f"Customer {order_id}",
        customer_phone="01712345678",
        amount=Decimal(str(amount)),
        payment_method=payment_method,
        status=status,
        created_at=BASE_TIME + timedelta(minutes=minutes),
    )


@pytest.fixture
async def session():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with SessionLocal() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def add_orders(session):
    async def _add(*orders):
        session.add_all(orders)
        await session.commit()
        return orders
    return _add


class MemoryDatabase:
    """Shared state for MemoryStore units of work."""

    def __init__(self):
        self.orders = {}
        self.transactions = {}

    def add(self, *orders):
        for order in orders:
            self.orders[order.order_id] = order

    def store(self):
        return MemoryStore(self)


class MemoryStore:
    """
    In-process implementation of the store contract.

    Reads yield to the event loop so concurrent ingestions interleave between
    candidate selection and the claim. Check-and-set steps never await, which
    makes them atomic under asyncio.
    """

    def __init__(self, db):
        self.db = db
        self._undo = []

    async def find_pending_orders(self, amount, payment_method):
        candidates = sorted(
            (o for o in self.db.orders.values()
             if o.status == OrderStatus.PENDING and o.amount == amount and o.payment_method == payment_method),
            key=lambda o: (o.created_at, o.order_id),
        )
        await asyncio.sleep(0)
        return candidates

    async def claim_order(self, order_id, transaction_id):
        order = self.db.orders.get(order_id)
        if order is None or order.status != OrderStatus.PENDING:
            return False
        order.status = OrderStatus.PAID
        order.transaction_id = transaction_id
        order.paid_at = datetime.utcnow()
        self._undo.append(lambda: self._release(order))
        return True

    @staticmethod
    def _release(order):
        order.status = OrderStatus.PENDING
        order.transaction_id = None
        order.paid_at = None

    async def find_transaction(self, transaction_id):
        await asyncio.sleep(0)
        return self.db.transactions.get(transaction_id)

    async def create_transaction(self, transaction_id, amount, provider, raw_message, sender):
        if transaction_id in self.db.transactions:
            await self.rollback()
            raise DuplicateTransactionError(transaction_id)
        transaction = Transaction(
            transaction_id=transaction_id,
            amount=amount,
            provider=provider,
            raw_message=raw_message,
            sender=sender,
            status=TransactionStatus.UNMATCHED,
            received_at=datetime.utcnow(),
        )
        self.db.transactions[transaction_id] = transaction
        self._undo.append(lambda: self.db.transactions.pop(transaction_id, None))
        await asyncio.sleep(0)
        return transaction

    async def mark_matched(self, transaction, order_id):
        transaction.status = TransactionStatus.MATCHED
        transaction.matched_order_id = order_id

    async def count_orders(self, status=None):
        return sum(1 for o in self.db.orders.values() if status is None or o.status == status)

    async def count_transactions(self, status=None):
        return sum(1 for t in self.db.transactions.values() if status is None or t.status == status)

    async def commit(self):
        self._undo.clear()

    async def rollback(self):
        while self._undo:
            self._undo.pop()()


@pytest.fixture
def memory_db():
    return MemoryDatabase()


@pytest.fixture
def make_order():
    return build_order
