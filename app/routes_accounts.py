# app/routes_accounts.py
"""
Routes for accounts: list with stats, create, rename, delete (cascading),
and the transactions scoped to one account.
"""

from fastapi import APIRouter, Depends

from app.deps import get_store
from app.errors import NotFoundError
from app.schemas import (
    AccountIn,
    TransactionIn,
    account_dict,
    account_stats_dict,
    last_amounts_dict,
    transaction_dict,
)
from app.services.store import Store

router = APIRouter(prefix="/accounts")


@router.get("")
def list_accounts(store: Store = Depends(get_store)):
    """All accounts with balance / count / last date, newest account first."""
    return [account_stats_dict(s) for s in store.get_all_accounts_with_stats()]


@router.post("", status_code=201)
def create_account(body: AccountIn, store: Store = Depends(get_store)):
    return account_dict(store.create_account(body.name))


@router.get("/{account_id}")
def get_account(account_id: str, store: Store = Depends(get_store)):
    stats = store.accounts.get_account_with_stats(account_id)
    if stats is None:
        raise NotFoundError("Account", account_id)
    return account_stats_dict(stats)


@router.patch("/{account_id}")
def rename_account(account_id: str, body: AccountIn, store: Store = Depends(get_store)):
    return account_dict(store.update_account(account_id, body.name))


@router.delete("/{account_id}")
def delete_account(account_id: str, store: Store = Depends(get_store)):
    removed = store.delete_account(account_id)
    return {"deleted": account_id, "transactions_removed": removed}


@router.get("/{account_id}/transactions")
def account_data(account_id: str, store: Store = Depends(get_store)):
    data = store.get_account_data(account_id)
    return {
        "balance": data["balance"],
        "transactions": [transaction_dict(tx) for tx in data["transactions"]],
        "last_transaction_amounts": last_amounts_dict(data["last_transaction_amounts"]),
    }


@router.post("/{account_id}/transactions", status_code=201)
def add_account_transaction(account_id: str, body: TransactionIn, store: Store = Depends(get_store)):
    tx = store.add_account_transaction(
        account_id,
        body.type,
        body.amount,
        body.reason,
        allow_overdraft=body.allow_overdraft,
    )
    return transaction_dict(tx)


@router.delete("/{account_id}/transactions")
def clear_account_transactions(account_id: str, store: Store = Depends(get_store)):
    return {"removed": store.clear_account_data(account_id)}
