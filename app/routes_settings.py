# app/routes_settings.py
"""
Theme preference and development-only maintenance routes.
"""

from fastapi import APIRouter, Depends, HTTPException

from app.config import ALLOW_FORCE_MIGRATION
from app.deps import get_store, get_theme_service
from app.schemas import ThemeIn
from app.services.store import Store
from app.services.theme_service import ThemeService

router = APIRouter()


@router.get("/settings/theme")
def get_theme(themes: ThemeService = Depends(get_theme_service)):
    return {"theme": themes.load_theme()}


@router.put("/settings/theme")
def set_theme(body: ThemeIn, themes: ThemeService = Depends(get_theme_service)):
    return {"theme": themes.save_theme(body.theme)}


@router.post("/settings/theme/toggle")
def toggle_theme(themes: ThemeService = Depends(get_theme_service)):
    return {"theme": themes.toggle_theme()}


@router.post("/maintenance/force-migration")
def force_migration(store: Store = Depends(get_store)):
    """
    Wipes accounts and transactions and replays the legacy blob.
    Only available when ALLOW_FORCE_MIGRATION is set.
    """
    if not ALLOW_FORCE_MIGRATION:
        raise HTTPException(status_code=403, detail="Force migration is disabled")
    result = store.migrations.force_migration()
    store.initialize()
    return result
