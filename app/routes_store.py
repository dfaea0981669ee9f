# app/routes_store.py
"""
Routes for the legacy flat shape ({balance, transactions[]}) on the default account.

Older screens call these; newer ones use /accounts and /transactions.
"""

from fastapi import APIRouter, Depends

from app.deps import get_store
from app.schemas import CashIn
from app.services.store import Store

router = APIRouter(prefix="/store")


@router.get("")
def load_data(store: Store = Depends(get_store)):
    return store.load_data()


@router.post("/cash-in")
def add_cash_in(body: CashIn, store: Store = Depends(get_store)):
    return store.add_cash_in(body.amount, body.reason)


@router.post("/cash-out")
def add_cash_out(body: CashIn, store: Store = Depends(get_store)):
    """Refused with 409 when the amount exceeds the current balance."""
    return store.add_cash_out(body.amount, body.reason)


@router.delete("/transactions/{transaction_id}")
def delete_transaction(transaction_id: str, store: Store = Depends(get_store)):
    return store.delete_transaction(transaction_id)


@router.get("/last-amounts")
def last_amounts(store: Store = Depends(get_store)):
    return store.get_last_transaction_amounts()


@router.post("/clear")
def clear_all_data(store: Store = Depends(get_store)):
    return {"removed": store.clear_all_data()}


@router.get("/stats")
def transaction_stats(store: Store = Depends(get_store)):
    return store.get_transaction_stats()
