# app/services/transaction_service.py
#
# Transaction Service
# CRUD and query operations over the transactions table, plus the derived
# balance and "last amount" lookups. Each public method is one unit of work.
#
# No balance check happens here: a cash_out that drives a balance negative is
# persisted as asked. The insufficient-balance guard lives in the legacy store
# (app/services/store.py).

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, List, NamedTuple, Optional

import structlog
from sqlalchemy.orm import Session, sessionmaker

from db import session_scope
from app.config import DATE_FORMAT
from app.errors import NotFoundError, ValidationError
from app.services.balance import signed_sum
from models import Account, Transaction, TransactionType, utcnow

logger = structlog.get_logger(__name__)

UNKNOWN_ACCOUNT_NAME = "Unknown Account"


class LastAmounts(NamedTuple):
    last_cash_in: float
    last_cash_out: float


@dataclass
class HistoryRow:
    """A transaction joined with the name of its account."""

    id: str
    account_id: Optional[str]
    account_name: str
    type: str
    amount: float
    reason: str
    date: str
    timestamp: int


# ---- Validation ----

def validate_type(tx_type) -> str:
    value = tx_type.value if isinstance(tx_type, TransactionType) else tx_type
    if value not in (TransactionType.CASH_IN.value, TransactionType.CASH_OUT.value):
        raise ValidationError(f"Unknown transaction type: {tx_type!r}")
    return value


def validate_amount(amount) -> float:
    if isinstance(amount, bool):
        raise ValidationError("Amount must be a number")
    try:
        value = float(amount)
    except (TypeError, ValueError):
        raise ValidationError(f"Amount must be a number, got {amount!r}")
    if not math.isfinite(value) or value <= 0:
        raise ValidationError("Amount must be greater than 0")
    return value


def clean_reason(reason: Optional[str]) -> str:
    return (reason or "").strip()


def to_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def from_millis(millis: int) -> datetime:
    return datetime.fromtimestamp(int(millis) / 1000)


class TransactionService:
    def __init__(
        self,
        session_factory: sessionmaker,
        clock: Callable[[], datetime] = datetime.now,
        date_format: str = DATE_FORMAT,
    ):
        self._session_factory = session_factory
        self._clock = clock
        self._date_format = date_format

    # ---- Queries ----

    def get_transaction_by_id(self, transaction_id: str) -> Optional[Transaction]:
        with session_scope(self._session_factory) as db:
            return db.get(Transaction, transaction_id)

    def get_all_transactions(self) -> List[Transaction]:
        """All transactions, newest first."""
        with session_scope(self._session_factory) as db:
            return db.query(Transaction).order_by(Transaction.timestamp.desc()).all()

    def get_account_transactions(self, account_id: str) -> List[Transaction]:
        with session_scope(self._session_factory) as db:
            return (
                db.query(Transaction)
                .filter(Transaction.account_id == account_id)
                .order_by(Transaction.timestamp.desc())
                .all()
            )

    def get_transactions_with_accounts(
        self,
        tx_type: Optional[str] = None,
        account_id: Optional[str] = None,
    ) -> List[HistoryRow]:
        """
        History view: every transaction (newest first) with its account name,
        optionally narrowed to one type and/or one account.
        """
        with session_scope(self._session_factory) as db:
            query = db.query(Transaction, Account.name).outerjoin(
                Account, Transaction.account_id == Account.id
            )
            if tx_type is not None:
                query = query.filter(Transaction.type == validate_type(tx_type))
            if account_id is not None:
                query = query.filter(Transaction.account_id == account_id)

            rows = query.order_by(Transaction.timestamp.desc()).all()

        return [
            HistoryRow(
                id=tx.id,
                account_id=tx.account_id,
                account_name=name or UNKNOWN_ACCOUNT_NAME,
                type=tx.type,
                amount=tx.amount,
                reason=tx.reason,
                date=tx.date,
                timestamp=tx.timestamp,
            )
            for tx, name in rows
        ]

    def get_current_balance(self) -> float:
        """Balance across every account."""
        with session_scope(self._session_factory) as db:
            return float(db.query(signed_sum).select_from(Transaction).scalar())

    def get_account_balance(self, account_id: str) -> float:
        with session_scope(self._session_factory) as db:
            return float(
                db.query(signed_sum)
                .select_from(Transaction)
                .filter(Transaction.account_id == account_id)
                .scalar()
            )

    def get_last_transaction_amounts(self) -> LastAmounts:
        with session_scope(self._session_factory) as db:
            return LastAmounts(
                last_cash_in=_latest_amount(db, TransactionType.CASH_IN.value),
                last_cash_out=_latest_amount(db, TransactionType.CASH_OUT.value),
            )

    def get_account_last_transaction_amounts(self, account_id: str) -> LastAmounts:
        with session_scope(self._session_factory) as db:
            return LastAmounts(
                last_cash_in=_latest_amount(db, TransactionType.CASH_IN.value, account_id),
                last_cash_out=_latest_amount(db, TransactionType.CASH_OUT.value, account_id),
            )

    def count_unscoped_transactions(self) -> int:
        """Rows written before accounts existed (account_id NULL)."""
        with session_scope(self._session_factory) as db:
            return db.query(Transaction).filter(Transaction.account_id.is_(None)).count()

    # ---- Mutations ----

    def add_transaction(
        self,
        account_id: str,
        tx_type,
        amount,
        reason: Optional[str] = "",
    ) -> Transaction:
        """
        Record a new cash movement on an account, stamped with the current time.
        """
        tx_type = validate_type(tx_type)
        amount = validate_amount(amount)

        with session_scope(self._session_factory) as db:
            _require_account(db, account_id)
            tx = self._build(account_id, tx_type, amount, reason)
            db.add(tx)

        logger.info(
            "transaction_added",
            transaction_id=tx.id,
            account_id=account_id,
            type=tx_type,
            amount=amount,
        )
        return tx

    def replay_transactions(self, account_id: str, entries: Iterable[dict]) -> int:
        """
        Insert many transactions on one account as a single unit of work.

        Each entry is a dict with `type`, `amount`, optional `reason`, and
        optionally the original `timestamp`, `date` and `legacy_id`. Entries
        whose legacy_id is already stored are skipped, so replaying the same
        batch twice writes it once. Returns the number of rows inserted.
        """
        prepared = []
        for entry in entries:
            prepared.append(
                (
                    validate_type(entry.get("type")),
                    validate_amount(entry.get("amount")),
                    entry.get("reason"),
                    entry.get("timestamp"),
                    entry.get("date"),
                    entry.get("legacy_id"),
                )
            )

        inserted = 0
        with session_scope(self._session_factory) as db:
            _require_account(db, account_id)

            legacy_ids = [p[5] for p in prepared if p[5] is not None]
            already = set()
            if legacy_ids:
                already = {
                    row[0]
                    for row in db.query(Transaction.legacy_id)
                    .filter(Transaction.legacy_id.in_(legacy_ids))
                    .all()
                }

            for tx_type, amount, reason, timestamp, date_string, legacy_id in prepared:
                if legacy_id is not None:
                    if legacy_id in already:
                        continue
                    already.add(legacy_id)
                db.add(
                    self._build(
                        account_id,
                        tx_type,
                        amount,
                        reason,
                        timestamp=timestamp,
                        date_string=date_string,
                        legacy_id=legacy_id,
                    )
                )
                inserted += 1

        logger.info("transactions_replayed", account_id=account_id, inserted=inserted)
        return inserted

    def update_transaction(self, transaction: Transaction, tx_type, amount, reason: Optional[str]) -> Transaction:
        """
        Edit type/amount/reason in place. The timestamp and date snapshot stay.
        """
        tx_type = validate_type(tx_type)
        amount = validate_amount(amount)

        with session_scope(self._session_factory) as db:
            record = db.get(Transaction, transaction.id)
            if record is None:
                raise NotFoundError("Transaction", transaction.id)
            record.type = tx_type
            record.amount = amount
            record.reason = clean_reason(reason)
            record.updated_at = utcnow()

        logger.info("transaction_updated", transaction_id=record.id, type=tx_type, amount=amount)
        return record

    def delete_transaction(self, transaction: Transaction) -> None:
        with session_scope(self._session_factory) as db:
            deleted = (
                db.query(Transaction)
                .filter(Transaction.id == transaction.id)
                .delete(synchronize_session=False)
            )
            if not deleted:
                raise NotFoundError("Transaction", transaction.id)

        logger.info("transaction_deleted", transaction_id=transaction.id)

    def clear_account_transactions(self, account_id: str) -> int:
        with session_scope(self._session_factory) as db:
            removed = (
                db.query(Transaction)
                .filter(Transaction.account_id == account_id)
                .delete(synchronize_session=False)
            )
        logger.info("account_transactions_cleared", account_id=account_id, removed=removed)
        return removed

    def clear_all_transactions(self) -> int:
        """Bulk removal; used by reset and migration paths only."""
        with session_scope(self._session_factory) as db:
            removed = db.query(Transaction).delete(synchronize_session=False)
        logger.warning("all_transactions_cleared", removed=removed)
        return removed

    def assign_unscoped_transactions(self, account_id: str) -> int:
        """
        Backfill account_id on every row that has none, in place.
        Ids, timestamps and date snapshots are kept.
        """
        with session_scope(self._session_factory) as db:
            _require_account(db, account_id)
            updated = (
                db.query(Transaction)
                .filter(Transaction.account_id.is_(None))
                .update(
                    {Transaction.account_id: account_id, Transaction.updated_at: utcnow()},
                    synchronize_session=False,
                )
            )
        logger.info("unscoped_transactions_assigned", account_id=account_id, updated=updated)
        return updated

    # ---- Internals ----

    def _build(
        self,
        account_id: str,
        tx_type: str,
        amount: float,
        reason: Optional[str],
        timestamp: Optional[int] = None,
        date_string: Optional[str] = None,
        legacy_id: Optional[str] = None,
    ) -> Transaction:
        # A replayed row keeps its original moment; the date snapshot follows it
        moment = self._clock() if timestamp is None else from_millis(timestamp)
        stamp = utcnow()
        return Transaction(
            account_id=account_id,
            type=tx_type,
            amount=amount,
            reason=clean_reason(reason),
            date=date_string or moment.strftime(self._date_format),
            timestamp=int(timestamp) if timestamp is not None else to_millis(moment),
            created_at=stamp,
            updated_at=stamp,
            legacy_id=legacy_id,
        )


def _require_account(db: Session, account_id: str) -> None:
    if account_id is None or db.get(Account, account_id) is None:
        raise NotFoundError("Account", str(account_id))


def _latest_amount(db: Session, tx_type: str, account_id: Optional[str] = None) -> float:
    """Amount of the single most recent row of `tx_type` (0 when there is none)."""
    query = db.query(Transaction.amount).filter(Transaction.type == tx_type)
    if account_id is not None:
        query = query.filter(Transaction.account_id == account_id)
    row = query.order_by(Transaction.timestamp.desc()).limit(1).first()
    return float(row[0]) if row is not None else 0.0
