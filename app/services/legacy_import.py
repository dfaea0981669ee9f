# app/services/legacy_import.py
#
# Legacy Export Import
# Reads an exported legacy `appData` JSON file ({balance, transactions[]}),
# cleans the transaction rows with pandas and writes the result into the
# key-value store, where the legacy migration phase picks it up.

import json
from pathlib import Path

import pandas as pd

from app.errors import ValidationError
from app.services.kv_store import KeyValueStore
from app.services.migration_service import LEGACY_STORAGE_KEY

LEGACY_COLUMNS = ["id", "type", "amount", "reason", "date", "timestamp"]
LEGACY_TYPES = {"cash_in", "cash_out"}


def _none_if_nan(x):
    if x is None or pd.isna(x):
        return None
    s = str(x).strip()
    return None if s == "" or s.lower() == "nan" else s


def clean_legacy_transactions(rows: list) -> pd.DataFrame:
    """
    Normalize raw legacy rows: keep the known columns, drop rows without a
    usable type or a positive amount, coerce amount/timestamp to numbers.
    """
    df = pd.DataFrame(rows)
    for col in LEGACY_COLUMNS:
        if col not in df.columns:
            df[col] = None
    df = df[LEGACY_COLUMNS].copy()

    # drop fully empty rows
    df = df.dropna(how="all")

    df["type"] = df["type"].astype(str).str.strip().str.lower()
    df = df[df["type"].isin(LEGACY_TYPES)].copy()

    df["amount"] = pd.to_numeric(df["amount"], errors="coerce")
    df = df[df["amount"] > 0].copy()

    df["timestamp"] = pd.to_numeric(df["timestamp"], errors="coerce")
    df["reason"] = df["reason"].fillna("").astype(str).str.strip()

    return df.reset_index(drop=True)


def load_legacy_export(path) -> dict:
    """Read and clean one export file; returns the legacy blob shape."""
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ValidationError(f"Cannot read legacy export {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ValidationError(f"{path.name}: expected an object with 'transactions'")

    df = clean_legacy_transactions(raw.get("transactions") or [])

    transactions = []
    for row in df.itertuples(index=False):
        timestamp = getattr(row, "timestamp")
        transactions.append(
            {
                "id": _none_if_nan(getattr(row, "id")),
                "type": getattr(row, "type"),
                "amount": float(getattr(row, "amount")),
                "reason": getattr(row, "reason"),
                "date": _none_if_nan(getattr(row, "date")) or "",
                "timestamp": None if pd.isna(timestamp) else int(timestamp),
            }
        )

    balance = pd.to_numeric(pd.Series([raw.get("balance")]), errors="coerce").iloc[0]
    return {
        "balance": 0.0 if pd.isna(balance) else float(balance),
        "transactions": transactions,
    }


def seed_legacy_blob(kv: KeyValueStore, path) -> int:
    """
    Store the cleaned export under the legacy key. Returns the number of
    transactions written into the blob.
    """
    blob = load_legacy_export(path)
    kv.set_json(LEGACY_STORAGE_KEY, blob)
    return len(blob["transactions"])
