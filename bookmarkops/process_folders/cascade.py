"""
# process_folders/cascade.py

Rename / move en cascade sans transactions : plan pur + exécution en deux phases.

Phase 1 : toutes les écritures (nouveaux dossiers + favoris réécrits).
Phase 2 : suppression des anciennes clés de dossiers, puis réécriture de l'index.

Un crash entre les phases laisse ancien et nouveau chemin côte à côte
(doublon récupérable) ; aucun dossier ni favori ne disparaît.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from bookmarkops.models.bookmark import Bookmark
from bookmarkops.models.folders import Folder
from bookmarkops.models.types import JsonDict
from bookmarkops.storage.folder_storage import FolderStorage, PhaseHook
from bookmarkops.utils.logger import LoggerProtocol, ensure_logger, with_child_logger
from bookmarkops.utils.path_utils import is_same_or_descendant, update_path_prefix, validate_path


@dataclass(frozen=True)
class CascadePlan:
    """
    Lot d'écritures calculé à partir d'un instantané unique du store.
    """

    operation: str
    old_path: str
    new_path: str
    folder_puts: dict[str, JsonDict] = field(default_factory=dict)
    bookmark_puts: dict[str, JsonDict] = field(default_factory=dict)
    removes: tuple[str, ...] = ()

    @property
    def puts(self) -> dict[str, JsonDict]:
        return {**self.folder_puts, **self.bookmark_puts}

    @property
    def new_folder_paths(self) -> list[str]:
        return [str(record["path"]) for record in self.folder_puts.values()]

    @property
    def is_empty(self) -> bool:
        return not (self.folder_puts or self.bookmark_puts or self.removes)


def plan_cascade(
    old_path: str,
    new_path: str,
    folders: Iterable[Folder],
    bookmarks: Iterable[Bookmark],
    *,
    operation: str,
    now: int,
) -> CascadePlan:
    """
    Calcule les écritures pour déplacer le sous-arbre `old_path` vers `new_path`.

    Chaque nouveau chemin de dossier est revalidé (profondeur comprise) : un
    déplacement qui pousserait un descendant au-delà de MAX_DEPTH lève
    PathValidationError avant toute écriture.
    """
    folder_puts: dict[str, JsonDict] = {}
    removes: list[str] = []

    for folder in folders:
        if not is_same_or_descendant(folder.path, old_path):
            continue
        updated_path = update_path_prefix(old_path, new_path, folder.path)
        validate_path(updated_path)
        updated = folder.with_new_path(updated_path, updated_at=now)
        folder_puts[updated.key] = updated.to_record()
        if updated.path != folder.path:
            removes.append(folder.key)

    bookmark_puts: dict[str, JsonDict] = {}
    for bookmark in bookmarks:
        if not bookmark.folder_path or not is_same_or_descendant(bookmark.folder_path, old_path):
            continue
        moved = bookmark.with_folder(update_path_prefix(old_path, new_path, bookmark.folder_path))
        bookmark_puts[moved.key] = moved.to_record()

    return CascadePlan(
        operation=operation,
        old_path=old_path,
        new_path=new_path,
        folder_puts=folder_puts,
        bookmark_puts=bookmark_puts,
        removes=tuple(removes),
    )


@with_child_logger
async def execute_cascade(
    storage: FolderStorage,
    plan: CascadePlan,
    *,
    before_removes: PhaseHook | None = None,
    logger: LoggerProtocol | None = None,
) -> None:
    """
    Applique le plan : écritures, (hook), suppressions, puis index.

    Aucune annulation automatique : une StorageError en cours de route laisse
    l'application partielle visible à l'appelant.
    """
    logger = ensure_logger(logger, __name__)
    logger.info(
        "[CASCADE] %s %s -> %s (%d dossiers, %d favoris)",
        plan.operation,
        plan.old_path,
        plan.new_path,
        len(plan.folder_puts),
        len(plan.bookmark_puts),
    )
    await storage.apply_batch(
        plan.puts,
        plan.removes,
        operation=plan.operation,
        path=plan.old_path,
        before_removes=before_removes,
    )
    await storage.rewrite_index_prefix(plan.old_path, plan.new_path, operation=plan.operation)
    logger.debug("[CASCADE] Terminé : %s -> %s", plan.old_path, plan.new_path)
