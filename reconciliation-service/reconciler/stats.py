from reconciler.models import OrderStatus, TransactionStatus
from reconciler.schemas import ReconciliationStats
from reconciler.store import ReconciliationStore


def match_rate(paid_orders: int, total_orders: int) -> float:
    if total_orders == 0:
        return 0.0
    return round(paid_orders / total_orders * 100, 2)


async def get_statistics(store: ReconciliationStore) -> ReconciliationStats:
    total_orders = await store.count_orders()
    paid_orders = await store.count_orders(OrderStatus.PAID)
    return ReconciliationStats(
        total_orders=total_orders,
        pending_orders=await store.count_orders(OrderStatus.PENDING),
        paid_orders=paid_orders,
        cancelled_orders=await store.count_orders(OrderStatus.CANCELLED),
        match_rate=match_rate(paid_orders, total_orders),
        total_transactions=await store.count_transactions(),
        matched_transactions=await store.count_transactions(TransactionStatus.MATCHED),
        unmatched_transactions=await store.count_transactions(TransactionStatus.UNMATCHED),
    )
