# routes_transactions.py
"""
Routes related to the global transaction history and single-transaction edits.
"""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query

from app.deps import get_store
from app.errors import NotFoundError
from app.schemas import TransactionUpdate, history_row_dict, last_amounts_dict, transaction_dict
from app.services.store import Store

router = APIRouter()


@router.get("/transactions")
def transactions_page(
    filter: Literal["all", "credit", "debit"] = Query("all"),
    account: Optional[str] = Query(None),
    store: Store = Depends(get_store),
):
    """
    History across all accounts, newest first.

    - filter: all / credit (cash_in) / debit (cash_out)
    - account: restrict to one account id
    Totals are over the filtered rows.
    """
    history = store.get_history(filter, account)
    return {
        "transactions": [history_row_dict(row) for row in history["transactions"]],
        "credit": history["credit"],
        "debit": history["debit"],
    }


@router.get("/transactions/{transaction_id}")
def get_transaction(transaction_id: str, store: Store = Depends(get_store)):
    tx = store.transactions.get_transaction_by_id(transaction_id)
    if tx is None:
        raise NotFoundError("Transaction", transaction_id)
    return transaction_dict(tx)


@router.patch("/transactions/{transaction_id}")
def update_transaction(transaction_id: str, body: TransactionUpdate, store: Store = Depends(get_store)):
    tx = store.update_transaction(transaction_id, body.type, body.amount, body.reason)
    return transaction_dict(tx)


@router.delete("/transactions/{transaction_id}")
def delete_transaction(transaction_id: str, store: Store = Depends(get_store)):
    store.delete_account_transaction(transaction_id)
    return {"deleted": transaction_id}


@router.get("/stats")
def global_stats(store: Store = Depends(get_store)):
    stats = store.get_global_stats()
    stats["last_transaction_amounts"] = last_amounts_dict(
        store.transactions.get_last_transaction_amounts()
    )
    return stats
