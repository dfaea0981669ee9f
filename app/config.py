# app/config.py
# Role: Runtime configuration read from the environment (and a local .env file).

"""
Settings for the ledger.

Everything is read once at import time from environment variables; a `.env`
file in the working directory is loaded first if present.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _env_truthy(name: str, default: str = "0") -> bool:
    v = os.getenv(name, default)
    return str(v).strip().lower() in ("1", "true", "yes", "y", "on")


# Full SQLAlchemy URL; empty means the default SQLite file (see db.py)
DATABASE_URL_OVERRIDE = os.getenv("FINANCE_DB_URL", "").strip()

# Name given to the account created implicitly by migration / the legacy store
DEFAULT_ACCOUNT_NAME = os.getenv("DEFAULT_ACCOUNT_NAME", "Main Account").strip() or "Main Account"

# strftime pattern for the human-readable `date` snapshot on each transaction,
# e.g. "Oct 18, 2026, 03:04 PM"
DATE_FORMAT = os.getenv("LEDGER_DATE_FORMAT", "%b %d, %Y, %I:%M %p")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()
LOG_JSON = _env_truthy("LOG_JSON")

# Destructive reset endpoint; never enable outside development
ALLOW_FORCE_MIGRATION = _env_truthy("ALLOW_FORCE_MIGRATION")
