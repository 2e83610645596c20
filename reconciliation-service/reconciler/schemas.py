from pydantic import BaseModel, Field
from typing import Optional
from decimal import Decimal
from datetime import datetime
import enum
from reconciler.models import Provider

class ParsedTransaction(BaseModel):
    provider: Provider
    transaction_id: Optional[str] = None
    amount: Optional[Decimal] = None
    counterparty_phone: Optional[str] = None
    raw_message: str

    model_config = {"frozen": True}

class OrderSummary(BaseModel):
    order_id: str
    customer_name: str
    amount: Decimal

    model_config = {"from_attributes": True}

class MatchResult(BaseModel):
    matched: bool
    order: Optional[OrderSummary] = None
    # Set when every claim attempt lost a race.
    contention: bool = False

class IngestionOutcome(enum.Enum):
    REJECTED = "rejected"
    EXTRACTION_FAILED = "extraction_failed"
    DUPLICATE = "duplicate"
    MATCHED = "matched"
    UNMATCHED = "unmatched"

class IngestionResult(BaseModel):
    outcome: IngestionOutcome
    message: str
    transaction_id: Optional[str] = None
    amount: Optional[Decimal] = None
    provider: Optional[Provider] = None
    matched: bool = False
    matched_order_id: Optional[str] = None
    order: Optional[OrderSummary] = None

class TransactionEvent(BaseModel):
    event_id: str
    event_type: str
    timestamp: datetime
    transaction_id: str
    amount: Decimal
    provider: Provider
    matched: bool
    order: Optional[OrderSummary] = None

class ReconciliationStats(BaseModel):
    total_orders: int
    pending_orders: int
    paid_orders: int
    cancelled_orders: int
    match_rate: float
    total_transactions: int
    matched_transactions: int
    unmatched_transactions: int

class WebhookPayload(BaseModel):
    message: str = Field(..., min_length=1, example="Tk 500.00 received from 01712345678. TrxID BK12ABC3DEF")
    sender: str = Field(..., min_length=1, example="bKash")
    token: str = Field(..., min_length=1)
