# app/services/kv_store.py
#
# Key-Value Store
# Durable get/set/remove over the key_value_store table. Holds the legacy
# `appData` blob, the migration completion flags, the schema version and the
# theme preference.

import json
from typing import Any, Optional

from sqlalchemy.orm import sessionmaker

from db import session_scope
from app.errors import StorageFailure
from models import KeyValueEntry


class KeyValueStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def get(self, key: str) -> Optional[str]:
        with session_scope(self._session_factory) as db:
            entry = db.get(KeyValueEntry, key)
            return entry.value if entry is not None else None

    def set(self, key: str, value: str) -> None:
        with session_scope(self._session_factory) as db:
            entry = db.get(KeyValueEntry, key)
            if entry is None:
                db.add(KeyValueEntry(key=key, value=value))
            else:
                entry.value = value

    def remove(self, key: str) -> None:
        with session_scope(self._session_factory) as db:
            db.query(KeyValueEntry).filter(KeyValueEntry.key == key).delete(
                synchronize_session=False
            )

    # ---- JSON helpers ----

    def get_json(self, key: str) -> Optional[Any]:
        """
        Parse the value stored at `key`; None when the key is absent.
        A value that is not valid JSON is reported as StorageFailure.
        """
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise StorageFailure(f"Stored value at {key!r} is not valid JSON: {exc}") from exc

    def set_json(self, key: str, value: Any) -> None:
        self.set(key, json.dumps(value))
