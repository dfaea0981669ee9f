# app/services/migration_service.py
"""
Migration engine.

Moves persisted data forward in two ordered phases, each gated by its own
completion flag in the key-value store:

1. legacy flat storage -> relational: the `appData` blob
   ({balance, transactions[]}) is replayed into the transactions table on the
   default account.
2. account scoping: relational rows that pre-date accounts (account_id NULL)
   are assigned to the default account, in place.

A flag is written only after its phase's writes have committed. If writing the
flag fails the error is logged and the run still succeeds; the next start
re-evaluates the phase, which is safe because phase 1 skips legacy ids it has
already replayed and phase 2 only touches rows without an account.
"""

from typing import Optional

import structlog

from db import SCHEMA_VERSION
from app.config import DEFAULT_ACCOUNT_NAME
from app.errors import StorageFailure, ValidationError
from app.services.account_service import AccountService
from app.services.kv_store import KeyValueStore
from app.services.transaction_service import (
    TransactionService,
    validate_amount,
    validate_type,
)

logger = structlog.get_logger(__name__)

LEGACY_STORAGE_KEY = "appData"
LEGACY_MIGRATION_COMPLETED_KEY = "legacy_migration_completed"
ACCOUNT_MIGRATION_COMPLETED_KEY = "account_migration_completed"
SCHEMA_VERSION_KEY = "schema_version"

_FLAG_VALUE = "true"


def normalize_legacy_transaction(raw, position: Optional[int] = None) -> Optional[dict]:
    """
    Turn one legacy transaction dict into a replay entry, or None if it is
    unusable (unknown type, non-positive amount, bad timestamp).

    `position` is the row's index in the blob; it goes into the fallback key
    of rows without an id so identical id-less rows stay distinct.
    """
    if not isinstance(raw, dict):
        return None
    try:
        tx_type = validate_type(raw.get("type"))
        amount = validate_amount(raw.get("amount"))
    except ValidationError:
        return None

    timestamp = raw.get("timestamp")
    if timestamp is not None:
        try:
            timestamp = int(timestamp)
        except (TypeError, ValueError):
            return None

    legacy_id = raw.get("id")
    if legacy_id in (None, ""):
        # No id in the blob: derive a stable key so a replay stays idempotent
        legacy_id = f"{position}:{timestamp}:{tx_type}:{amount}:{raw.get('reason') or ''}"

    return {
        "type": tx_type,
        "amount": amount,
        "reason": raw.get("reason") or "",
        "timestamp": timestamp,
        "date": raw.get("date") or None,
        "legacy_id": str(legacy_id)[:64],
    }


class MigrationService:
    def __init__(
        self,
        kv: KeyValueStore,
        accounts: AccountService,
        transactions: TransactionService,
        default_account_name: str = DEFAULT_ACCOUNT_NAME,
    ):
        self._kv = kv
        self._accounts = accounts
        self._transactions = transactions
        self._default_account_name = default_account_name

    # ---- Flags ----

    def is_legacy_migration_completed(self) -> bool:
        return self._kv.get(LEGACY_MIGRATION_COMPLETED_KEY) == _FLAG_VALUE

    def is_account_migration_completed(self) -> bool:
        return self._kv.get(ACCOUNT_MIGRATION_COMPLETED_KEY) == _FLAG_VALUE

    def _mark(self, key: str, value: str = _FLAG_VALUE) -> None:
        try:
            self._kv.set(key, value)
        except StorageFailure as exc:
            logger.error("migration_flag_not_saved", key=key, error=str(exc))

    def get_status(self) -> dict:
        return {
            "legacy_migration_completed": self.is_legacy_migration_completed(),
            "account_migration_completed": self.is_account_migration_completed(),
            "schema_version": self._kv.get(SCHEMA_VERSION_KEY),
        }

    # ---- Legacy blob ----

    def load_legacy_data(self) -> Optional[dict]:
        """
        The legacy {balance, transactions} blob, or None when it was never written.
        A blob that cannot be parsed raises StorageFailure.
        """
        data = self._kv.get_json(LEGACY_STORAGE_KEY)
        if data is None:
            return None
        if not isinstance(data, dict):
            raise StorageFailure(f"Legacy data at {LEGACY_STORAGE_KEY!r} is not an object")
        if not isinstance(data.get("transactions") or [], list):
            raise StorageFailure(f"Legacy data at {LEGACY_STORAGE_KEY!r} has no transaction list")
        return {
            "balance": data.get("balance") or 0,
            "transactions": data.get("transactions") or [],
        }

    # ---- Phases ----

    def migrate_legacy_data(self) -> int:
        """Phase 1. Returns the number of transactions written."""
        if self.is_legacy_migration_completed():
            logger.debug("legacy_migration_already_completed")
            return 0

        legacy = self.load_legacy_data()
        if not legacy or not legacy["transactions"]:
            logger.info("legacy_migration_nothing_to_migrate")
            self._mark(LEGACY_MIGRATION_COMPLETED_KEY)
            return 0

        entries = []
        for position, raw in enumerate(legacy["transactions"]):
            entry = normalize_legacy_transaction(raw, position)
            if entry is None:
                logger.warning("legacy_transaction_skipped", raw=raw)
                continue
            entries.append(entry)

        logger.info(
            "legacy_migration_started",
            found=len(legacy["transactions"]),
            valid=len(entries),
        )

        inserted = 0
        if entries:
            account = self._accounts.get_or_create_default_account(self._default_account_name)
            inserted = self._transactions.replay_transactions(account.id, entries)

        self._mark(LEGACY_MIGRATION_COMPLETED_KEY)
        logger.info("legacy_migration_completed", inserted=inserted)
        return inserted

    def migrate_account_scope(self) -> int:
        """Phase 2. Returns the number of rows assigned to the default account."""
        if self.is_account_migration_completed():
            logger.debug("account_migration_already_completed")
            return 0

        pending = self._transactions.count_unscoped_transactions()
        assigned = 0
        if pending:
            account = self._accounts.get_or_create_default_account(self._default_account_name)
            assigned = self._transactions.assign_unscoped_transactions(account.id)

        self._mark(ACCOUNT_MIGRATION_COMPLETED_KEY)
        logger.info("account_migration_completed", assigned=assigned)
        return assigned

    def migrate_data(self) -> dict:
        """Run every phase in order; phases already done are skipped."""
        replayed = self.migrate_legacy_data()
        assigned = self.migrate_account_scope()
        self._mark(SCHEMA_VERSION_KEY, str(SCHEMA_VERSION))
        return {"legacy_transactions_replayed": replayed, "transactions_assigned": assigned}

    def force_migration(self) -> dict:
        """
        Development reset: forget both flags, delete every transaction and
        account, then migrate again from the legacy blob. Destructive.
        """
        logger.warning("force_migration_requested")
        self._kv.remove(LEGACY_MIGRATION_COMPLETED_KEY)
        self._kv.remove(ACCOUNT_MIGRATION_COMPLETED_KEY)
        self._transactions.clear_all_transactions()
        self._accounts.delete_all_accounts()
        return self.migrate_data()
