"""
# storage/migration.py

Migration unique des favoris sans dossier vers "Import".
"""

from __future__ import annotations

from dataclasses import dataclass

from bookmarkops.models.bookmark import Platform
from bookmarkops.models.types import now_ms
from bookmarkops.process_folders.import_paths import IMPORT_FOLDER_PATH
from bookmarkops.storage.bookmark_storage import BookmarkStorage
from bookmarkops.storage.folder_storage import FolderStorage
from bookmarkops.store.kv_store import KeyValueStore
from bookmarkops.utils.logger import LoggerProtocol, ensure_logger, with_child_logger

MIGRATION_FLAG_KEY = "bookmarks_migrated"
MIGRATION_DATE_KEY = "migration_date"


@dataclass(frozen=True)
class MigrationResult:
    skipped: bool
    migrated_count: int = 0


async def is_migrated(store: KeyValueStore) -> bool:
    return bool(await store.get(MIGRATION_FLAG_KEY))


async def reset_migration(store: KeyValueStore) -> None:
    await store.remove([MIGRATION_FLAG_KEY, MIGRATION_DATE_KEY])


@with_child_logger
async def run_migration_if_needed(store: KeyValueStore, *, logger: LoggerProtocol | None = None) -> MigrationResult:
    """
    Rattache au dossier "Import" (créé si besoin) tous les favoris sans dossier.

    Ne s'exécute qu'une fois : le drapeau `bookmarks_migrated` est posé après
    l'écriture groupée.
    """
    logger = ensure_logger(logger, __name__)
    if await is_migrated(store):
        logger.info("[MIGRATION] Déjà migré, rien à faire")
        return MigrationResult(skipped=True)

    folders = FolderStorage(store, logger=logger)
    if await folders.get(IMPORT_FOLDER_PATH) is None:
        await folders.create(IMPORT_FOLDER_PATH)
        logger.info('[MIGRATION] Dossier "%s" créé', IMPORT_FOLDER_PATH)

    bookmarks = await BookmarkStorage(store, logger=logger).get_all_bookmarks()
    updates = {
        b.key: {**b.with_folder(IMPORT_FOLDER_PATH).to_record(), "platform": b.platform or Platform.CHATGPT.value}
        for b in bookmarks
        if not b.folder_path
    }
    if updates:
        await store.set(updates)
        logger.info('[MIGRATION] %d favoris migrés vers "%s"', len(updates), IMPORT_FOLDER_PATH)
    else:
        logger.info("[MIGRATION] Aucun favori à migrer")

    await store.set({MIGRATION_FLAG_KEY: True, MIGRATION_DATE_KEY: now_ms()})
    return MigrationResult(skipped=False, migrated_count=len(updates))
