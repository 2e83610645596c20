from sqlalchemy import Column, String, Numeric, DateTime, Enum, Text, Index
from sqlalchemy.orm import declarative_base
from datetime import datetime
import enum

AMOUNT_PRECISION = 12
AMOUNT_SCALE = 2

Base = declarative_base()

class Provider(enum.Enum):
    BKASH = "bkash"
    NAGAD = "nagad"
    ROCKET = "rocket"
    BANK = "bank"

class OrderStatus(enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    CANCELLED = "cancelled"

class TransactionStatus(enum.Enum):
    MATCHED = "matched"
    UNMATCHED = "unmatched"

class Order(Base):
    __tablename__ = "orders"

    order_id = Column(String, primary_key=True, index=True)
    customer_name = Column(String, nullable=False)
    customer_phone = Column(String, nullable=False)
    amount = Column(Numeric(AMOUNT_PRECISION, AMOUNT_SCALE), nullable=False)
    payment_method = Column(Enum(Provider), nullable=False)
    status = Column(Enum(OrderStatus), default=OrderStatus.PENDING, nullable=False)
    transaction_id = Column(String, unique=True, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    paid_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_orders_pending_lookup", "status", "amount", "payment_method"),
    )

class Transaction(Base):
    __tablename__ = "transactions"

    transaction_id = Column(String, primary_key=True, index=True) # Primary key doubles as the duplicate guard
    amount = Column(Numeric(AMOUNT_PRECISION, AMOUNT_SCALE), nullable=False)
    provider = Column(Enum(Provider), nullable=False)
    raw_message = Column(Text, nullable=False)
    sender = Column(String, nullable=False)
    matched_order_id = Column(String, unique=True, nullable=True)
    status = Column(Enum(TransactionStatus), default=TransactionStatus.UNMATCHED, nullable=False, index=True)
    received_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
