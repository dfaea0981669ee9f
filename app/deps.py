# app/deps.py
# Role: Shared application-level dependencies.
#       Builds the service objects once from a session factory and hands the
#       resulting Store to routes through FastAPI dependency injection.

"""
Shared dependencies for the ledger app.
"""

from datetime import datetime
from functools import lru_cache
from typing import Callable, Optional

from sqlalchemy.orm import sessionmaker

from db import SessionLocal
from app.services.account_service import AccountService
from app.services.kv_store import KeyValueStore
from app.services.migration_service import MigrationService
from app.services.store import Store
from app.services.theme_service import ThemeService
from app.services.transaction_service import TransactionService


def build_store(
    session_factory: sessionmaker,
    account_clock: Optional[Callable[[], datetime]] = None,
    transaction_clock: Optional[Callable[[], datetime]] = None,
) -> Store:
    """Wire the services around one session factory. Clocks are overridable for tests."""
    kv = KeyValueStore(session_factory)
    accounts = (
        AccountService(session_factory, clock=account_clock)
        if account_clock
        else AccountService(session_factory)
    )
    transactions = (
        TransactionService(session_factory, clock=transaction_clock)
        if transaction_clock
        else TransactionService(session_factory)
    )
    migrations = MigrationService(kv, accounts, transactions)
    return Store(accounts, transactions, migrations)


# -------------------------------------------------------------------
# FastAPI dependencies
# -------------------------------------------------------------------

@lru_cache()
def get_store() -> Store:
    """
    The process-wide Store (built on first use).

    Typical usage in routes:
        store: Store = Depends(get_store)
    """
    return build_store(SessionLocal)


@lru_cache()
def get_theme_service() -> ThemeService:
    return ThemeService(KeyValueStore(SessionLocal))
