import asyncio
import logging
from decimal import Decimal
from reconciler.database import get_session, init_db
from reconciler.models import Order, Provider

logger = logging.getLogger(__name__)

SAMPLE_ORDERS = [
    ("TEST001", "Test Customer 1", "01712345678", Decimal("500.00"), Provider.BKASH),
    ("TEST002", "Test Customer 2", "01787654321", Decimal("1000.00"), Provider.NAGAD),
    ("TEST003", "Test Customer 3", "01698765432", Decimal("250.00"), Provider.BKASH),
]

async def seed_orders(session):
    # Check if orders are already seeded
    if await session.get(Order, SAMPLE_ORDERS[0][0]):
        logger.info("Sample orders already seeded.")
        return False

    session.add_all([
        Order(order_id=order_id, customer_name=name, customer_phone=phone, amount=amount, payment_method=method)
        for order_id, name, phone, amount, method in SAMPLE_ORDERS
    ])
    await session.commit()
    logger.info(f"Seeded {len(SAMPLE_ORDERS)} pending orders.")
    return True

async def main():
    await init_db()
    async for session in get_session():
        await seed_orders(session)

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
