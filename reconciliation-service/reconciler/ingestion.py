"""
Ingestion of forwarded payment SMS.

One call is one unit of work: extract, guard against duplicates, record the
transaction, claim an order and commit. The domain event is published only
after the commit, so a notification failure never undoes a match.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import uuid4
from reconciler.config import EVENT_EXCHANGE
from reconciler.exceptions import DuplicateTransactionError
from reconciler.extraction import ExtractionPipeline, default_pipeline
from reconciler.matcher import match
from reconciler.messaging import publish_event
from reconciler.models import AMOUNT_PRECISION, AMOUNT_SCALE, Transaction, TransactionStatus
from reconciler.schemas import (
    IngestionOutcome, IngestionResult, MatchResult, ParsedTransaction, TransactionEvent,
)
from reconciler.store import ReconciliationStore

logger = logging.getLogger(__name__)

AMOUNT_LIMIT = Decimal(10) ** (AMOUNT_PRECISION - AMOUNT_SCALE)


def amount_fits_column(amount: Decimal) -> bool:
    return amount < AMOUNT_LIMIT and amount.as_tuple().exponent >= -AMOUNT_SCALE


def duplicate_result(parsed: ParsedTransaction, existing: Optional[Transaction]) -> IngestionResult:
    # Same shape on every re-delivery, built from what was recorded the first time.
    if existing is None:
        return IngestionResult(
            outcome=IngestionOutcome.DUPLICATE,
            message="Transaction already processed",
            transaction_id=parsed.transaction_id,
            amount=parsed.amount,
            provider=parsed.provider,
        )
    return IngestionResult(
        outcome=IngestionOutcome.DUPLICATE,
        message="Transaction already processed",
        transaction_id=existing.transaction_id,
        amount=existing.amount,
        provider=existing.provider,
        matched=existing.status == TransactionStatus.MATCHED,
        matched_order_id=existing.matched_order_id,
    )


async def publish_transaction_event(parsed: ParsedTransaction, result: MatchResult):
    event = TransactionEvent(
        event_id=str(uuid4()),
        event_type="TransactionMatched" if result.matched else "TransactionUnmatched",
        timestamp=datetime.utcnow(),
        transaction_id=parsed.transaction_id,
        amount=parsed.amount,
        provider=parsed.provider,
        matched=result.matched,
        order=result.order,
    )
    routing_key = "transaction.matched" if result.matched else "transaction.unmatched"
    await publish_event(EVENT_EXCHANGE, routing_key, event.model_dump(mode="json"))


async def ingest(store: ReconciliationStore, raw_message: str, sender: str,
                 pipeline: ExtractionPipeline = default_pipeline,
                 max_attempts: Optional[int] = None) -> IngestionResult:
    provider, parsed = pipeline.run(raw_message, sender)
    if provider is None:
        logger.info(f"Rejected SMS from unrecognised sender {sender!r}")
        return IngestionResult(outcome=IngestionOutcome.REJECTED, message="Sender not recognised; SMS not processed")

    if parsed is None or parsed.amount is None or not amount_fits_column(parsed.amount):
        logger.warning(f"Could not extract transaction details from {provider.value} SMS sent by {sender!r}")
        return IngestionResult(
            outcome=IngestionOutcome.EXTRACTION_FAILED,
            message="SMS received but could not extract transaction details",
            provider=provider,
        )

    existing = await store.find_transaction(parsed.transaction_id)
    if existing is not None:
        logger.info(f"Duplicate transaction received: {parsed.transaction_id}")
        return duplicate_result(parsed, existing)

    try:
        transaction = await store.create_transaction(
            transaction_id=parsed.transaction_id,
            amount=parsed.amount,
            provider=parsed.provider,
            raw_message=raw_message,
            sender=parsed.counterparty_phone or sender,
        )
    except DuplicateTransactionError:
        logger.info(f"Duplicate transaction lost the insert race: {parsed.transaction_id}")
        return duplicate_result(parsed, await store.find_transaction(parsed.transaction_id))

    try:
        result = await match(store, parsed.transaction_id, parsed.amount, parsed.provider, max_attempts=max_attempts)
        if result.matched:
            await store.mark_matched(transaction, result.order.order_id)
        await store.commit()
    except Exception:
        await store.rollback()
        raise

    await publish_transaction_event(parsed, result)

    if result.matched:
        return IngestionResult(
            outcome=IngestionOutcome.MATCHED,
            message=f"Order {result.order.order_id} successfully matched",
            transaction_id=parsed.transaction_id,
            amount=parsed.amount,
            provider=parsed.provider,
            matched=True,
            matched_order_id=result.order.order_id,
            order=result.order,
        )
    return IngestionResult(
        outcome=IngestionOutcome.UNMATCHED,
        message=f"No order found for amount {parsed.amount} BDT via {parsed.provider.value}",
        transaction_id=parsed.transaction_id,
        amount=parsed.amount,
        provider=parsed.provider,
    )
