# models.py
# Role: SQLAlchemy ORM models for the ledger domain.
#       Defines Account, Transaction (each row one cash movement) and the
#       key-value table that holds the legacy blob, migration flags and settings.

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from db import Base


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    # Naive UTC; SQLite DateTime columns do not keep tzinfo
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TransactionType(str, Enum):
    CASH_IN = "cash_in"
    CASH_OUT = "cash_out"


class Account(Base):
    """
    A named scope that owns transactions.

    Its balance is always derived from the transactions; nothing here stores it.
    """

    __tablename__ = "accounts"

    # Opaque primary key, assigned at creation
    id = Column(String(36), primary_key=True, default=new_id)

    # Trimmed display name; unique among live accounts (checked by AccountService)
    name = Column(String(100), nullable=False)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    # Deletion of children is done explicitly by AccountService.delete_account
    transactions = relationship("Transaction", back_populates="account", lazy="select")

    def __repr__(self) -> str:
        return f"<Account {self.id} {self.name!r}>"


class Transaction(Base):
    """
    ORM model representing a single cash movement.

    `amount` is always positive; `type` carries the sign (cash_in adds,
    cash_out subtracts).
    """

    __tablename__ = "transactions"

    # Opaque primary key, assigned at creation
    id = Column(String(36), primary_key=True, default=new_id)

    # Owning account. NULL only for rows written before accounts existed;
    # the account-scoping migration fills those in.
    account_id = Column(String(36), ForeignKey("accounts.id"), nullable=True, index=True)

    # "cash_in" | "cash_out"
    type = Column(String(8), nullable=False)

    # Positive quantity in currency units
    amount = Column(Float, nullable=False)

    # Free text, stored trimmed (may be empty)
    reason = Column(Text, nullable=False, default="")

    # Human-readable snapshot of creation time, stored verbatim
    date = Column(String(64), nullable=False)

    # Epoch milliseconds; sort key for history and "last" lookups
    timestamp = Column(Integer, nullable=False, index=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    # Id of the legacy flat-storage transaction this row was replayed from
    legacy_id = Column(String(64), nullable=True, index=True)

    account = relationship("Account", back_populates="transactions")

    @property
    def date_string(self) -> str:
        return self.date

    def __repr__(self) -> str:
        return f"<Transaction {self.id} {self.type} {self.amount}>"


class KeyValueEntry(Base):
    """Durable key-value substrate (legacy blob, migration flags, theme)."""

    __tablename__ = "key_value_store"

    key = Column(String(128), primary_key=True)
    value = Column(Text, nullable=False)
