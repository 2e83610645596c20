import pytest
from sqlalchemy import select
from reconciler.models import Order, OrderStatus
from reconciler.seeder import SAMPLE_ORDERS, seed_orders


@pytest.mark.asyncio
async def test_seed_orders_is_idempotent(session):
    assert await seed_orders(session) is True
    assert await seed_orders(session) is False

    result = await session.execute(select(Order))
    orders = result.scalars().all()
    assert len(orders) == len(SAMPLE_ORDERS)
    assert all(order.status == OrderStatus.PENDING for order in orders)
