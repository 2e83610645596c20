"""
Order matcher.

Finds the oldest pending order with the exact amount and payment method of an
incoming transaction and claims it with a conditional update. A lost claim
means another transaction took that order first, so selection starts over.
"""
import logging
from decimal import Decimal
from typing import Optional
from tenacity import AsyncRetrying, RetryError, retry_if_exception_type, stop_after_attempt, wait_random
from reconciler.config import CLAIM_MAX_ATTEMPTS
from reconciler.exceptions import ClaimConflictError
from reconciler.models import Provider
from reconciler.schemas import MatchResult, OrderSummary
from reconciler.store import ReconciliationStore

logger = logging.getLogger(__name__)


async def claim_oldest_pending_order(store: ReconciliationStore, transaction_id: str, amount: Decimal,
                                     provider: Provider) -> MatchResult:
    candidates = await store.find_pending_orders(amount, provider)
    if not candidates:
        logger.info(f"No pending {provider.value} order for {amount} (transaction {transaction_id})")
        return MatchResult(matched=False)

    order = candidates[0]
    if not await store.claim_order(order.order_id, transaction_id):
        raise ClaimConflictError(order.order_id, transaction_id)

    logger.info(f"Order {order.order_id} matched with transaction {transaction_id}")
    return MatchResult(matched=True, order=OrderSummary.model_validate(order))


async def match(store: ReconciliationStore, transaction_id: str, amount: Decimal, provider: Provider,
                max_attempts: Optional[int] = None) -> MatchResult:
    attempts = max_attempts or CLAIM_MAX_ATTEMPTS
    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_random(min=0, max=0.01),
            retry=retry_if_exception_type(ClaimConflictError),
        ):
            with attempt:
                return await claim_oldest_pending_order(store, transaction_id, amount, provider)
    except RetryError:
        logger.warning(
            f"Claim contention exhausted after {attempts} attempts for transaction {transaction_id} "
            f"({provider.value}, {amount}); recording as unmatched"
        )
        return MatchResult(matched=False, contention=True)
