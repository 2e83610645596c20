import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Protocol
from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from reconciler.exceptions import DuplicateTransactionError
from reconciler.models import Order, OrderStatus, Provider, Transaction, TransactionStatus

logger = logging.getLogger(__name__)


class ReconciliationStore(Protocol):
    """Persistence contract the matcher and ingestion depend on. One instance is one unit of work."""

    async def find_pending_orders(self, amount: Decimal, payment_method: Provider) -> List[Order]: ...

    async def claim_order(self, order_id: str, transaction_id: str) -> bool: ...

    async def find_transaction(self, transaction_id: str) -> Optional[Transaction]: ...

    async def create_transaction(self, transaction_id: str, amount: Decimal, provider: Provider,
                                 raw_message: str, sender: str) -> Transaction: ...

    async def mark_matched(self, transaction: Transaction, order_id: str) -> None: ...

    async def count_orders(self, status: Optional[OrderStatus] = None) -> int: ...

    async def count_transactions(self, status: Optional[TransactionStatus] = None) -> int: ...

    async def commit(self) -> None: ...

    async def rollback(self) -> None: ...


class SqlAlchemyStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_pending_orders(self, amount: Decimal, payment_method: Provider) -> List[Order]:
        result = await self.session.execute(
            select(Order)
            .where(
                Order.status == OrderStatus.PENDING,
                Order.amount == amount,
                Order.payment_method == payment_method,
            )
            .order_by(Order.created_at.asc(), Order.order_id.asc())
        )
        return list(result.scalars().all())

    async def claim_order(self, order_id: str, transaction_id: str) -> bool:
        # Compare-and-set: the row only changes if it is still pending at write time.
        result = await self.session.execute(
            update(Order)
            .where(Order.order_id == order_id, Order.status == OrderStatus.PENDING)
            .values(status=OrderStatus.PAID, transaction_id=transaction_id, paid_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def find_transaction(self, transaction_id: str) -> Optional[Transaction]:
        return await self.session.get(Transaction, transaction_id)

    async def create_transaction(self, transaction_id: str, amount: Decimal, provider: Provider,
                                 raw_message: str, sender: str) -> Transaction:
        transaction = Transaction(
            transaction_id=transaction_id,
            amount=amount,
            provider=provider,
            raw_message=raw_message,
            sender=sender,
            status=TransactionStatus.UNMATCHED,
            received_at=datetime.utcnow(),
        )
        self.session.add(transaction)
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            raise DuplicateTransactionError(transaction_id) from e
        return transaction

    async def mark_matched(self, transaction: Transaction, order_id: str) -> None:
        transaction.status = TransactionStatus.MATCHED
        transaction.matched_order_id = order_id
        await self.session.flush()

    async def count_orders(self, status: Optional[OrderStatus] = None) -> int:
        stmt = select(func.count()).select_from(Order)
        if status is not None:
            stmt = stmt.where(Order.status == status)
        return (await self.session.execute(stmt)).scalar_one()

    async def count_transactions(self, status: Optional[TransactionStatus] = None) -> int:
        stmt = select(func.count()).select_from(Transaction)
        if status is not None:
            stmt = stmt.where(Transaction.status == status)
        return (await self.session.execute(stmt)).scalar_one()

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
