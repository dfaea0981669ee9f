# app/services/account_service.py
#
# Account Service
# CRUD for accounts, the name-uniqueness rule, the cascading delete, and
# per-account statistics derived from the transaction log.

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional

import structlog
from sqlalchemy import func
from sqlalchemy.orm import Session, sessionmaker

from db import session_scope
from app.errors import DuplicateNameError, NotFoundError, ValidationError
from app.services.balance import signed_sum
from models import Account, Transaction, utcnow

logger = structlog.get_logger(__name__)


@dataclass
class AccountWithStats:
    account: Account
    balance: float
    transaction_count: int
    last_transaction_date: Optional[str] = None


def clean_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("Account name cannot be empty")
    return cleaned


class AccountService:
    def __init__(
        self,
        session_factory: sessionmaker,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self._clock = clock

    # ---- Queries ----

    def get_all_accounts(self) -> List[Account]:
        """Accounts, most recently created first."""
        with session_scope(self._session_factory) as db:
            return db.query(Account).order_by(Account.created_at.desc()).all()

    def get_account_by_id(self, account_id: str) -> Optional[Account]:
        with session_scope(self._session_factory) as db:
            return db.get(Account, account_id)

    def get_account_balance(self, account_id: str) -> float:
        with session_scope(self._session_factory) as db:
            return float(
                db.query(signed_sum)
                .select_from(Transaction)
                .filter(Transaction.account_id == account_id)
                .scalar()
            )

    def get_account_with_stats(self, account_id: str) -> Optional[AccountWithStats]:
        """Balance, count and latest date for one account; None if it doesn't exist."""
        with session_scope(self._session_factory) as db:
            account = db.get(Account, account_id)
            if account is None:
                return None
            return _stats_for(db, account)

    def get_all_accounts_with_stats(self) -> List[AccountWithStats]:
        with session_scope(self._session_factory) as db:
            accounts = db.query(Account).order_by(Account.created_at.desc()).all()
            return [_stats_for(db, account) for account in accounts]

    # ---- Mutations ----

    def create_account(self, name: str) -> Account:
        name = clean_name(name)

        with session_scope(self._session_factory) as db:
            if _name_taken(db, name):
                raise DuplicateNameError(name)
            now = self._clock()
            account = Account(name=name, created_at=now, updated_at=now)
            db.add(account)

        logger.info("account_created", account_id=account.id, name=name)
        return account

    def update_account(self, account: Account, new_name: str) -> Account:
        new_name = clean_name(new_name)

        with session_scope(self._session_factory) as db:
            record = db.get(Account, account.id)
            if record is None:
                raise NotFoundError("Account", account.id)
            if _name_taken(db, new_name, exclude_id=record.id):
                raise DuplicateNameError(new_name)
            record.name = new_name
            record.updated_at = self._clock()

        logger.info("account_renamed", account_id=record.id, name=new_name)
        return record

    def delete_account(self, account: Account) -> int:
        """
        Delete the account's transactions, then the account, in one unit of work.
        Returns the number of transactions removed with it.
        """
        with session_scope(self._session_factory) as db:
            record = db.get(Account, account.id)
            if record is None:
                raise NotFoundError("Account", account.id)

            removed = (
                db.query(Transaction)
                .filter(Transaction.account_id == record.id)
                .delete(synchronize_session=False)
            )
            db.query(Account).filter(Account.id == record.id).delete(synchronize_session=False)

        logger.info("account_deleted", account_id=account.id, transactions_removed=removed)
        return removed

    def delete_all_accounts(self) -> int:
        """Reset path: every transaction (scoped or not), then every account."""
        with session_scope(self._session_factory) as db:
            db.query(Transaction).delete(synchronize_session=False)
            removed = db.query(Account).delete(synchronize_session=False)

        logger.warning("all_accounts_deleted", removed=removed)
        return removed

    def get_or_create_default_account(self, name: str) -> Account:
        """
        The oldest existing account, or a new one called `name` if there are none.
        """
        with session_scope(self._session_factory) as db:
            account = db.query(Account).order_by(Account.created_at.asc()).first()
            if account is not None:
                return account

            now = self._clock()
            account = Account(name=clean_name(name), created_at=now, updated_at=now)
            db.add(account)

        logger.info("default_account_created", account_id=account.id, name=account.name)
        return account


def _name_taken(db: Session, name: str, exclude_id: Optional[str] = None) -> bool:
    query = db.query(Account.id).filter(Account.name == name)
    if exclude_id is not None:
        query = query.filter(Account.id != exclude_id)
    return query.first() is not None


def _stats_for(db: Session, account: Account) -> AccountWithStats:
    balance, count = (
        db.query(signed_sum, func.count(Transaction.id))
        .select_from(Transaction)
        .filter(Transaction.account_id == account.id)
        .one()
    )
    last = (
        db.query(Transaction.date)
        .filter(Transaction.account_id == account.id)
        .order_by(Transaction.timestamp.desc())
        .limit(1)
        .first()
    )
    return AccountWithStats(
        account=account,
        balance=float(balance),
        transaction_count=int(count),
        last_transaction_date=last[0] if last is not None else None,
    )
