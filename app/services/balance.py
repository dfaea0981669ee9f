# app/services/balance.py
#
# Balance Helpers
# The sign rule for cash movements and in-memory totals over a list of
# transactions. The record services compute the same sums in SQL; these are
# used where rows are already loaded (filtered history, legacy stats).

from typing import Iterable, Optional, Tuple

from sqlalchemy import case, func

from models import Transaction, TransactionType


def signed_amount(tx_type: str, amount: float) -> float:
    """cash_in counts positive, cash_out negative."""
    return amount if tx_type == TransactionType.CASH_IN.value else -amount


def compute_totals(transactions: Iterable) -> Tuple[float, float]:
    """
    Returns (total_cash_in, total_cash_out) over objects with `.type` and
    `.amount` (ORM rows or anything shaped like them).
    """
    cash_in = 0.0
    cash_out = 0.0
    for tx in transactions:
        if tx.type == TransactionType.CASH_IN.value:
            cash_in += tx.amount
        else:
            cash_out += tx.amount
    return cash_in, cash_out


def compute_balance(transactions: Iterable) -> float:
    return sum(signed_amount(tx.type, tx.amount) for tx in transactions)


def transaction_stats(transactions: list) -> dict:
    """
    Totals, count and the date of the most recent transaction (by timestamp).
    """
    cash_in, cash_out = compute_totals(transactions)
    last: Optional[Transaction] = max(transactions, key=lambda t: t.timestamp, default=None)
    return {
        "total_cash_in": cash_in,
        "total_cash_out": cash_out,
        "transaction_count": len(transactions),
        "last_transaction_date": last.date if last is not None else None,
    }


# SQL expression for the same sign rule: SUM(+amount | -amount), 0 when empty
signed_sum = func.coalesce(
    func.sum(
        case(
            (Transaction.type == TransactionType.CASH_IN.value, Transaction.amount),
            else_=-Transaction.amount,
        )
    ),
    0.0,
)
