# db.py
# Role: Database bootstrap for the ledger.
#       Defines the SQLite engine, SQLAlchemy session factory, and declarative Base.
#       Also owns the unit-of-work helper and the in-place schema upgrade.

"""
Database setup for the ledger.

- Uses SQLite database at: <project_root>/database/finance.db
  (override with FINANCE_DB_URL)
- Ensures the 'database' folder exists when the default path is used.
"""

import os
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from app.config import DATABASE_URL_OVERRIDE
from app.errors import StorageFailure

# Base directory of the project (where this module lives)
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Folder for SQLite DB (created on startup if missing)
DB_DIR = os.path.join(BASE_DIR, "database")

# Full path to the SQLite database file
DB_PATH = os.path.join(DB_DIR, "finance.db")

# Bumped when a column is added to an existing table (see ensure_schema)
SCHEMA_VERSION = 2

# Declarative base class for ORM models
Base = declarative_base()


def build_engine(url: str, **engine_kwargs) -> Engine:
    """
    Create an engine with SQLite foreign keys switched on.

    For SQLite, we need check_same_thread=False for FastAPI (threaded request handling).
    """
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    new_engine = create_engine(url, connect_args=connect_args, **engine_kwargs)

    if url.startswith("sqlite"):
        @event.listens_for(new_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return new_engine


def build_session_factory(bind: Engine) -> sessionmaker:
    # expire_on_commit=False: services hand detached records back to callers
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=bind,
    )


if DATABASE_URL_OVERRIDE:
    DATABASE_URL = DATABASE_URL_OVERRIDE
else:
    os.makedirs(DB_DIR, exist_ok=True)  # ensure folder exists
    DATABASE_URL = f"sqlite:///{DB_PATH}"

engine = build_engine(DATABASE_URL)

# Standard session factory used by the services (see app/deps.py:get_store)
SessionLocal = build_session_factory(engine)


@contextmanager
def session_scope(session_factory: sessionmaker) -> Iterator[Session]:
    """
    One logical operation = one database transaction.

    Commits when the block finishes, rolls back on any error. Database errors
    come out as StorageFailure; domain errors raised inside the block pass
    through unchanged (after the rollback).
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        raise StorageFailure(f"Database operation failed: {exc}") from exc
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# Columns added after schema version 1, with the DDL used to add them in place
_ADDED_TRANSACTION_COLUMNS = {
    "account_id": "VARCHAR(36) REFERENCES accounts(id)",
    "legacy_id": "VARCHAR(64)",
}


def ensure_schema(bind: Engine) -> list[str]:
    """
    Create missing tables, then upgrade an old `transactions` table in place.

    Version 1 databases have no account_id / legacy_id columns. They are added
    as nullable columns; the existing rows keep account_id NULL until the
    account-scoping migration assigns them. Returns the names of the added columns.
    """
    # Import so the models are registered on Base before create_all
    import models  # noqa: F401

    try:
        Base.metadata.create_all(bind=bind)

        existing = {col["name"] for col in inspect(bind).get_columns("transactions")}
        added: list[str] = []
        with bind.begin() as conn:
            for name, ddl in _ADDED_TRANSACTION_COLUMNS.items():
                if name not in existing:
                    conn.execute(text(f"ALTER TABLE transactions ADD COLUMN {name} {ddl}"))
                    added.append(name)
    except SQLAlchemyError as exc:
        raise StorageFailure(f"Could not prepare database schema: {exc}") from exc

    return added
