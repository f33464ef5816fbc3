# bookmarkops/services/reconcile_service.py

from bookmarkops.models.bookmark import BOOKMARK_KEY_PREFIX
from bookmarkops.models.reconcile import ApplyStats, DiffSets
from bookmarkops.process_folders.folder_operations import FolderOperationsManager
from bookmarkops.storage.bookmark_storage import BookmarkStorage
from bookmarkops.storage.folder_storage import FolderStorage
from bookmarkops.store.kv_store import KeyValueStore
from bookmarkops.utils.logger import LoggerProtocol, ensure_logger, with_child_logger
from bookmarkops.utils.path_utils import collation_key


@with_child_logger
async def collect_diffs(store: KeyValueStore, logger: LoggerProtocol | None = None) -> DiffSets:
    """
    Scan complet du store et comparaison avec l'index des dossiers.
    """
    logger = ensure_logger(logger, __name__)
    logger.info("=== COLLECTE DES ÉCARTS ===")
    storage = FolderStorage(store, logger=logger)

    records, corrupted = await storage.scan_records()
    index = await storage.get_index()
    diff = index.diff(records.keys())

    for p in diff.missing:
        logger.info("📁 + Dossier absent de l'index : %s", p)
    for p in diff.ghosts:
        logger.info("📁 - Entrée d'index fantôme : %s", p)
    for p in diff.duplicates:
        logger.info("📁 = Entrée d'index en double : %s", p)

    orphan_folders = sorted(
        (p for p, f in records.items() if f.parent_path is not None and f.parent_path not in records),
        key=collation_key,
    )
    for p in orphan_folders:
        logger.info("📁 ? Dossier sans parent : %s", p)

    bookmarks = await BookmarkStorage(store, logger=logger).get_all_bookmarks()
    orphans = [b for b in bookmarks if b.folder_path and b.folder_path not in records]
    for b in orphans:
        logger.info("🔖 ? Favori dans un dossier inexistant : %s (%s)", b.key, b.folder_path)
    missing_bookmark_folders = sorted({str(b.folder_path) for b in orphans}, key=collation_key)

    valid_keys = {b.key for b in bookmarks}
    everything = await store.get_all()
    bad_bookmarks = [k for k in everything if k.startswith(BOOKMARK_KEY_PREFIX) and k not in valid_keys]
    corrupted_keys = sorted([*corrupted, *bad_bookmarks])
    for k in corrupted_keys:
        logger.info("⚠️ Enregistrement illisible : %s", k)

    diffs = DiffSets(
        folders_missing_in_index=list(diff.missing),
        index_ghosts=list(diff.ghosts),
        index_duplicates=list(diff.duplicates),
        orphan_folders=orphan_folders,
        orphan_bookmarks=sorted(b.key for b in orphans),
        missing_bookmark_folders=missing_bookmark_folders,
        corrupted_keys=corrupted_keys,
    )
    if diffs.is_clean:
        logger.info("✅ - Aucune erreur détectée")
    return diffs


@with_child_logger
async def apply_diffs(
    store: KeyValueStore,
    diffs: DiffSets,
    *,
    create_missing_folders: bool = False,
    logger: LoggerProtocol | None = None,
) -> ApplyStats:
    logger = ensure_logger(logger, __name__)
    stats = ApplyStats()
    storage = FolderStorage(store, logger=logger)

    # --- INDEX ---
    if not diffs.index_is_clean:
        records, _ = await storage.scan_records()
        await storage.replace_index(records.keys())
        stats.index_added = len(diffs.folders_missing_in_index)
        stats.index_removed = len(diffs.index_ghosts) + len(diffs.index_duplicates)
        logger.info("✅ Index reconstruit : %d dossiers", len(records))

    # --- DOSSIERS MANQUANTS ---
    if create_missing_folders and (diffs.orphan_folders or diffs.missing_bookmark_folders):
        manager = FolderOperationsManager(store, folder_storage=storage, logger=logger)
        result = await manager.ensure_folder_paths([*diffs.orphan_folders, *diffs.missing_bookmark_folders])
        if result.success:
            stats.folders_created = len(result.data or [])
            for p in result.data or []:
                logger.info("✅ Ajout dossier : %s", p)
        else:
            stats.errors += 1
            logger.warning("❌ Erreur création dossiers : %s", result.error)

    # --- FAVORIS ILLISIBLES ---
    if any(k.startswith(BOOKMARK_KEY_PREFIX) for k in diffs.corrupted_keys):
        repair = await BookmarkStorage(store, logger=logger).repair_bookmarks()
        stats.bookmarks_repaired = repair.repaired
        stats.bookmarks_removed = repair.removed

    # --- Résumé ---
    logger.info("=== Résumé des actions ===")
    logger.info("🆕 Entrées d'index ajoutées : %d", stats.index_added)
    logger.info("🗑️  Entrées d'index retirées : %d", stats.index_removed)
    logger.info("🆕 Dossiers créés : %d", stats.folders_created)
    logger.info("🔧 Favoris réparés : %d", stats.bookmarks_repaired)
    logger.info("🗑️  Favoris supprimés : %d", stats.bookmarks_removed)
    logger.info("⚠️  Erreurs : %d", stats.errors)

    return stats


@with_child_logger
async def reconcile(
    store: KeyValueStore,
    apply: bool = False,
    create_missing_folders: bool = False,
    logger: LoggerProtocol | None = None,
) -> DiffSets:
    """
    Point d'entrée principal.
    """
    logger = ensure_logger(logger, __name__)
    diffs = await collect_diffs(store, logger=logger)
    logger.debug("Diffs collected: %s", diffs)
    if apply:
        await apply_diffs(store, diffs, create_missing_folders=create_missing_folders, logger=logger)
    return diffs
