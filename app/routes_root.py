# routes_root.py
"""
Root / basic endpoints (health, migration status).
"""

from fastapi import APIRouter, Depends

from app.deps import get_store
from app.services.store import Store

router = APIRouter()


@router.get("/")
def read_root():
    """
    Simple health check / landing endpoint.
    """
    return {"message": "Ledger is running"}


@router.get("/status")
def migration_status(store: Store = Depends(get_store)):
    return store.migrations.get_status()
