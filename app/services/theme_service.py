# app/services/theme_service.py
#
# Theme Preference
# The light/dark UI preference, kept in the same key-value substrate as the
# ledger data but unrelated to it.

from typing import Optional

import structlog

from app.errors import ValidationError
from app.services.kv_store import KeyValueStore

logger = structlog.get_logger(__name__)

THEME_STORAGE_KEY = "app_theme"
THEMES = ("light", "dark")
DEFAULT_THEME = "light"


class ThemeService:
    def __init__(self, kv: KeyValueStore):
        self._kv = kv

    def load_theme(self) -> str:
        saved = self._kv.get(THEME_STORAGE_KEY)
        return saved if saved in THEMES else DEFAULT_THEME

    def save_theme(self, theme: str) -> str:
        if theme not in THEMES:
            raise ValidationError(f"Unknown theme: {theme!r}")
        self._kv.set(THEME_STORAGE_KEY, theme)
        logger.info("theme_saved", theme=theme)
        return theme

    def toggle_theme(self, current: Optional[str] = None) -> str:
        """Flip `current` (or the stored theme when not given) and save it."""
        if current is None:
            current = self.load_theme()
        return self.save_theme("dark" if current == "light" else "light")
