"""
This script imports a legacy `appData` export (the JSON blob the app kept in
flat key-value storage before the relational database) into the local
database and runs the migrations on it.

The export is cleaned first (unknown types, non-positive amounts and empty
rows are dropped), written under the legacy storage key, and then replayed by
the migration engine into the default account.

Purpose:
- Bring an old device backup into a fresh install
- Serve as a repeatable migration step during development
  (pass --force to wipe relational data and replay from the blob; an
  install whose legacy phase already ran ignores a new blob without it)
"""


from __future__ import annotations

import sys
from pathlib import Path

import structlog

from db import SessionLocal, engine, ensure_schema
from app.deps import build_store
from app.logging_setup import configure_logging
from app.services.kv_store import KeyValueStore
from app.services.legacy_import import seed_legacy_blob


DEFAULT_EXPORT = Path("data-migration/appData.json")

logger = structlog.get_logger("data-migration")


def import_legacy_export(path: Path = DEFAULT_EXPORT, force: bool = False) -> dict:
    ensure_schema(engine)

    count = seed_legacy_blob(KeyValueStore(SessionLocal), path)
    logger.info("legacy_blob_seeded", path=str(path), transactions=count)

    store = build_store(SessionLocal)
    if force:
        result = store.migrations.force_migration()
    else:
        result = store.migrations.migrate_data()

    logger.info("migration_finished", **result)
    return result


if __name__ == "__main__":
    configure_logging()
    args = [a for a in sys.argv[1:] if a != "--force"]
    import_legacy_export(
        Path(args[0]) if args else DEFAULT_EXPORT,
        force="--force" in sys.argv[1:],
    )
