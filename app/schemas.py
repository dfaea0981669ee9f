# app/schemas.py
# Role: Request bodies for the JSON routes, plus plain-dict serializers for
#       the ORM records and service results the routes return.

from typing import Literal, Optional

from pydantic import BaseModel, Field

TransactionTypeLiteral = Literal["cash_in", "cash_out"]


class AccountIn(BaseModel):
    name: str = Field(..., description="Account name (trimmed, unique)")


class CashIn(BaseModel):
    # Positivity is checked by the services so every caller gets the same error
    amount: float
    reason: str = Field(default="", max_length=100)


class TransactionIn(BaseModel):
    type: TransactionTypeLiteral
    amount: float
    reason: str = Field(default="", max_length=100)
    allow_overdraft: bool = False


class TransactionUpdate(BaseModel):
    type: TransactionTypeLiteral
    amount: float
    reason: str = Field(default="", max_length=100)


class ThemeIn(BaseModel):
    theme: Literal["light", "dark"]


# -------------------------------------------------------------------
# Serializers
# -------------------------------------------------------------------

def account_dict(account) -> dict:
    return {
        "id": account.id,
        "name": account.name,
        "created_at": account.created_at.isoformat() if account.created_at else None,
        "updated_at": account.updated_at.isoformat() if account.updated_at else None,
    }


def account_stats_dict(stats) -> dict:
    return {
        "account": account_dict(stats.account),
        "balance": stats.balance,
        "transaction_count": stats.transaction_count,
        "last_transaction_date": stats.last_transaction_date,
    }


def transaction_dict(tx) -> dict:
    return {
        "id": tx.id,
        "account_id": tx.account_id,
        "type": tx.type,
        "amount": tx.amount,
        "reason": tx.reason,
        "date": tx.date,
        "timestamp": tx.timestamp,
    }


def history_row_dict(row) -> dict:
    data = transaction_dict(row)
    data["account_name"] = row.account_name
    return data


def last_amounts_dict(last) -> dict:
    return {"last_cash_in": last.last_cash_in, "last_cash_out": last.last_cash_out}
