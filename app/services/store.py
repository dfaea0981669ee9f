# app/services/store.py
"""
Legacy store facade.

Older call sites expect the flat shape the app used before the relational
database existed:

    {"balance": 120.0, "transactions": [{"id", "type", "amount", "reason",
                                         "date", "timestamp"}, ...]}

`Store` serves that shape from the relational services, scoped to the default
account, and runs the migrations on `initialize()`. It is also where the
insufficient-balance rule for cash-out is enforced. Account-scoped helpers
used by the newer screens sit at the bottom.

Everything that translates to the legacy shape lives in this module, so it can
be removed once no caller needs it.
"""

import threading
from typing import List, Optional

import structlog

from app.config import DEFAULT_ACCOUNT_NAME
from app.errors import InsufficientBalanceError, NotFoundError, ValidationError
from app.services.account_service import AccountService
from app.services.balance import compute_totals, transaction_stats
from app.services.migration_service import MigrationService
from app.services.transaction_service import (
    TransactionService,
    validate_amount,
    validate_type,
)
from models import Transaction, TransactionType

logger = structlog.get_logger(__name__)

NO_REASON = "No reason provided"

# History filter names used by the UI
HISTORY_FILTERS = {
    "all": None,
    "credit": TransactionType.CASH_IN.value,
    "debit": TransactionType.CASH_OUT.value,
}


def to_legacy(transaction: Transaction) -> dict:
    return {
        "id": transaction.id,
        "type": transaction.type,
        "amount": transaction.amount,
        "reason": transaction.reason,
        "date": transaction.date,
        "timestamp": transaction.timestamp,
    }


def legacy_last_amounts(last) -> dict:
    return {"lastCashIn": last.last_cash_in, "lastCashOut": last.last_cash_out}


class Store:
    def __init__(
        self,
        accounts: AccountService,
        transactions: TransactionService,
        migrations: MigrationService,
        default_account_name: str = DEFAULT_ACCOUNT_NAME,
    ):
        self.accounts = accounts
        self.transactions = transactions
        self.migrations = migrations
        self._default_account_name = default_account_name
        self._default_account_id: Optional[str] = None
        # Held across the balance check and the insert of a guarded cash-out
        self._cash_out_lock = threading.Lock()

    # ---- Setup ----

    def initialize(self) -> None:
        """Run pending migrations and resolve the default account. Safe to repeat."""
        result = self.migrations.migrate_data()
        self._default_account_id = None
        account_id = self.default_account_id()
        logger.info("store_initialized", default_account_id=account_id, **result)

    def default_account_id(self) -> str:
        """
        Cached id of the account the legacy API works on. Re-resolved when the
        cached account has been deleted.
        """
        if self._default_account_id is not None:
            if self.accounts.get_account_by_id(self._default_account_id) is not None:
                return self._default_account_id

        account = self.accounts.get_or_create_default_account(self._default_account_name)
        self._default_account_id = account.id
        return account.id

    # ---- Legacy shape (default account) ----

    def load_data(self) -> dict:
        account_id = self.default_account_id()
        balance = self.transactions.get_account_balance(account_id)
        transactions = self.transactions.get_account_transactions(account_id)
        return {
            "balance": balance,
            "transactions": [to_legacy(tx) for tx in transactions],
        }

    def add_cash_in(self, amount, reason: str = "") -> dict:
        amount = validate_amount(amount)
        self.transactions.add_transaction(
            self.default_account_id(),
            TransactionType.CASH_IN,
            amount,
            (reason or "").strip() or NO_REASON,
        )
        return self.load_data()

    def add_cash_out(self, amount, reason: str = "") -> dict:
        amount = validate_amount(amount)
        account_id = self.default_account_id()

        with self._cash_out_lock:
            balance = self.transactions.get_account_balance(account_id)
            if amount > balance:
                raise InsufficientBalanceError(amount, balance)

            self.transactions.add_transaction(
                account_id,
                TransactionType.CASH_OUT,
                amount,
                (reason or "").strip() or NO_REASON,
            )
        return self.load_data()

    def delete_transaction(self, transaction_id: str) -> dict:
        """Delete by id if it still exists, then reload."""
        transaction = self.transactions.get_transaction_by_id(transaction_id)
        if transaction is not None:
            self.transactions.delete_transaction(transaction)
        return self.load_data()

    def get_last_transaction_amounts(self) -> dict:
        last = self.transactions.get_account_last_transaction_amounts(self.default_account_id())
        return legacy_last_amounts(last)

    def get_transaction_stats(self) -> dict:
        """Totals, count and latest date for the default account."""
        return transaction_stats(
            self.transactions.get_account_transactions(self.default_account_id())
        )

    def clear_all_data(self) -> int:
        """Remove every transaction of the default account."""
        return self.transactions.clear_account_transactions(self.default_account_id())

    def get_global_stats(self) -> dict:
        all_transactions = self.transactions.get_all_transactions()
        cash_in, cash_out = compute_totals(all_transactions)
        return {
            "globalBalance": self.transactions.get_current_balance(),
            "totalAccounts": len(self.accounts.get_all_accounts()),
            "globalTransactionCount": len(all_transactions),
            "globalCashIn": cash_in,
            "globalCashOut": cash_out,
        }

    # ---- Account-scoped ----

    def get_all_accounts_with_stats(self):
        return self.accounts.get_all_accounts_with_stats()

    def create_account(self, name: str):
        return self.accounts.create_account(name)

    def update_account(self, account_id: str, new_name: str):
        return self.accounts.update_account(self._require_account(account_id), new_name)

    def delete_account(self, account_id: str) -> int:
        removed = self.accounts.delete_account(self._require_account(account_id))
        if account_id == self._default_account_id:
            self._default_account_id = None
        return removed

    def get_account_data(self, account_id: str) -> dict:
        self._require_account(account_id)
        return {
            "balance": self.transactions.get_account_balance(account_id),
            "transactions": self.transactions.get_account_transactions(account_id),
            "last_transaction_amounts": self.transactions.get_account_last_transaction_amounts(
                account_id
            ),
        }

    def add_account_transaction(
        self,
        account_id: str,
        tx_type,
        amount,
        reason: str = "",
        allow_overdraft: bool = False,
    ) -> Transaction:
        """
        Add to a specific account. A cash-out above the account balance is
        refused unless the caller confirmed it with allow_overdraft=True.
        """
        tx_type = validate_type(tx_type)
        amount = validate_amount(amount)
        self._require_account(account_id)

        if tx_type != TransactionType.CASH_OUT.value or allow_overdraft:
            return self.transactions.add_transaction(account_id, tx_type, amount, reason)

        with self._cash_out_lock:
            balance = self.transactions.get_account_balance(account_id)
            if amount > balance:
                raise InsufficientBalanceError(amount, balance)
            return self.transactions.add_transaction(account_id, tx_type, amount, reason)

    def update_transaction(self, transaction_id: str, tx_type, amount, reason: str = "") -> Transaction:
        return self.transactions.update_transaction(
            self._require_transaction(transaction_id), tx_type, amount, reason
        )

    def delete_account_transaction(self, transaction_id: str) -> None:
        self.transactions.delete_transaction(self._require_transaction(transaction_id))

    def clear_account_data(self, account_id: str) -> int:
        self._require_account(account_id)
        return self.transactions.clear_account_transactions(account_id)

    def get_history(self, filter_name: str = "all", account_id: Optional[str] = None) -> dict:
        """
        History rows (newest first) narrowed by "all" / "credit" / "debit" and
        optionally one account, with credit/debit totals of what is shown.
        """
        if filter_name not in HISTORY_FILTERS:
            raise ValidationError(f"Unknown history filter: {filter_name!r}")
        rows: List = self.transactions.get_transactions_with_accounts(
            tx_type=HISTORY_FILTERS[filter_name], account_id=account_id
        )
        credit, debit = compute_totals(rows)
        return {"transactions": rows, "credit": credit, "debit": debit}

    # ---- Internals ----

    def _require_account(self, account_id: str):
        account = self.accounts.get_account_by_id(account_id)
        if account is None:
            raise NotFoundError("Account", account_id)
        return account

    def _require_transaction(self, transaction_id: str) -> Transaction:
        transaction = self.transactions.get_transaction_by_id(transaction_id)
        if transaction is None:
            raise NotFoundError("Transaction", transaction_id)
        return transaction
