"""
# storage/folder_storage.py

CRUD des enregistrements `folder:<path>` + maintenance de l'index global.

Ordre des écritures (le store n'a pas de transactions) :
- création : enregistrement écrit AVANT l'ajout à l'index ;
- suppression : retrait de l'index AVANT la suppression de l'enregistrement.
Un crash entre les deux étapes laisse au pire une entrée d'index fantôme ou un
enregistrement hors index, tous deux réparables par reconcile ; jamais un
dossier listé sans enregistrement lisible.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from typing import Any, TypeVar

from bookmarkops.models.exceptions import BookmarkOpsError, ConflictError, NotFoundError, StorageError
from bookmarkops.models.folder_index import FOLDER_INDEX_KEY, FolderIndex
from bookmarkops.models.folders import FOLDER_KEY_PREFIX, Folder, folder_key
from bookmarkops.models.types import now_ms
from bookmarkops.store.kv_store import KeyValueStore
from bookmarkops.utils.logger import LoggerProtocol, ensure_logger
from bookmarkops.utils.path_utils import (
    collation_key,
    get_depth,
    get_folder_name,
    get_parent_path,
    has_name_conflict,
    normalize,
    validate_path,
)

T = TypeVar("T")

PhaseHook = Callable[[], Awaitable[None]]


class FolderStorage:
    """
    Accès bas niveau aux dossiers ; lève des erreurs typées (pas de OperationResult ici).
    """

    def __init__(self, store: KeyValueStore, *, logger: LoggerProtocol | None = None) -> None:
        self.store = store
        self.logger = ensure_logger(logger, __name__)

    async def _call(self, awaitable: Awaitable[T], *, operation: str, path: str | None, step: str) -> T:
        try:
            return await awaitable
        except BookmarkOpsError:
            raise
        except Exception as exc:  # pylint: disable=broad-except
            self.logger.error("[STORE] %s KO (%s, step=%s): %s", operation, path, step, exc)
            raise StorageError(str(exc) or type(exc).__name__, operation=operation, path=path, step=step) from exc

    # --- Index -----------------------------------------------------------------

    async def get_index(self) -> FolderIndex:
        raw = await self._call(self.store.get(FOLDER_INDEX_KEY), operation="index", path=None, step="read_index")
        return FolderIndex.from_value(raw)

    async def save_index(self, index: FolderIndex, *, operation: str = "index") -> None:
        await self._call(
            self.store.set({FOLDER_INDEX_KEY: index.to_value()}),
            operation=operation,
            path=None,
            step="write_index",
        )

    async def rewrite_index_prefix(self, old_path: str, new_path: str, *, operation: str = "rename") -> FolderIndex:
        index = (await self.get_index()).rewrite_prefix(old_path, new_path)
        await self.save_index(index, operation=operation)
        self.logger.debug("[INDEX] Préfixe réécrit %s -> %s (%d entrées)", old_path, new_path, len(index))
        return index

    async def replace_index(self, paths: Iterable[str]) -> FolderIndex:
        index = FolderIndex().reconcile(paths)
        await self.save_index(index, operation="reconcile")
        return index

    # --- Lecture ---------------------------------------------------------------

    async def get(self, path: str) -> Folder | None:
        normalized = normalize(path)
        raw = await self._call(self.store.get(folder_key(normalized)), operation="get", path=normalized, step="read")
        if raw is None:
            return None
        try:
            return Folder.from_record(raw)
        except (KeyError, TypeError, ValueError) as exc:
            self.logger.warning("[FOLDER] Enregistrement illisible %s: %s", normalized, exc)
            return None

    async def get_all(self) -> list[Folder]:
        """
        Tous les dossiers de l'index, triés par chemin.

        Une seule lecture multi-clés pilotée par l'index.
        """
        index = await self.get_index()
        if not len(index):
            return []

        keys = [folder_key(p) for p in dict.fromkeys(index)]
        found = await self._call(self.store.get_all(keys), operation="list", path=None, step="read_many")

        folders: list[Folder] = []
        for key in keys:
            raw = found.get(key)
            if raw is None:
                self.logger.warning("[INDEX] Entrée sans enregistrement (fantôme) : %s", key)
                continue
            try:
                folders.append(Folder.from_record(raw))
            except (KeyError, TypeError, ValueError) as exc:
                self.logger.warning("[FOLDER] Enregistrement illisible %s: %s", key, exc)
        return sorted(folders, key=lambda f: collation_key(f.path))

    async def scan_records(self) -> tuple[dict[str, Folder], list[str]]:
        """
        Scan complet du store (réparation uniquement) : dossiers lisibles par
        chemin + clés `folder:*` corrompues.
        """
        everything = await self._call(self.store.get_all(), operation="scan", path=None, step="read_all")
        folders: dict[str, Folder] = {}
        corrupted: list[str] = []
        for key, raw in everything.items():
            if not key.startswith(FOLDER_KEY_PREFIX):
                continue
            try:
                folder = Folder.from_record(raw)
            except (KeyError, TypeError, ValueError):
                corrupted.append(key)
                continue
            folders[folder.path] = folder
        return folders, corrupted

    @staticmethod
    def siblings_of(path: str, folders: Iterable[Folder]) -> list[Folder]:
        parent = get_parent_path(path)
        return [f for f in folders if f.parent_path == parent]

    async def get_siblings(self, path: str) -> list[Folder]:
        return self.siblings_of(path, await self.get_all())

    # --- Écriture --------------------------------------------------------------

    async def create(self, path: str) -> Folder:
        """
        Crée un dossier.

        Lève PathValidationError, ConflictError (existe déjà / nom pris au même
        niveau), NotFoundError (parent absent), StorageError.
        """
        validate_path(path)
        normalized = normalize(path)
        name = get_folder_name(normalized)
        depth = get_depth(normalized)

        if await self.get(normalized) is not None:
            raise ConflictError(f"Folder already exists: {normalized}", ctx={"operation": "create", "path": normalized})

        parent_path = get_parent_path(normalized)
        if parent_path is not None and await self.get(parent_path) is None:
            raise NotFoundError(
                f"Parent folder does not exist: {parent_path}",
                ctx={"operation": "create", "path": normalized, "parent": parent_path},
            )

        siblings = await self.get_siblings(normalized)
        if has_name_conflict(name, (f.name for f in siblings)):
            raise ConflictError(
                f'Folder "{name}" already exists at this level',
                ctx={"operation": "create", "path": normalized},
            )

        ts = now_ms()
        folder = Folder(path=normalized, name=name, depth=depth, created_at=ts, updated_at=ts)

        await self._call(
            self.store.set({folder.key: folder.to_record()}), operation="create", path=normalized, step="write_record"
        )
        index = await self.get_index()
        await self.save_index(index.add(normalized), operation="create")

        self.logger.info("[FOLDER] Créé : %s", normalized)
        return folder

    async def delete(self, path: str) -> None:
        """
        Supprime un enregistrement (le contrôle "sous-arbre vide" est fait par l'appelant).
        """
        normalized = normalize(path)
        if await self.get(normalized) is None:
            raise NotFoundError(f"Folder not found: {normalized}", ctx={"operation": "delete", "path": normalized})

        index = await self.get_index()
        await self.save_index(index.remove(normalized), operation="delete")
        await self._call(self.store.remove(folder_key(normalized)), operation="delete", path=normalized, step="remove_record")
        self.logger.info("[FOLDER] Supprimé : %s", normalized)

    async def bulk_delete(self, paths: Sequence[str]) -> int:
        """
        Suppression groupée SANS contrôle de vacuité : l'appelant garantit que
        les dossiers sont vides.
        """
        if not paths:
            return 0
        normalized = [normalize(p) for p in paths]
        index = await self.get_index()
        await self.save_index(index.remove_many(normalized), operation="bulk_delete")
        await self._call(
            self.store.remove([folder_key(p) for p in normalized]),
            operation="bulk_delete",
            path=None,
            step="remove_records",
        )
        self.logger.info("[FOLDER] Suppression groupée : %d dossiers", len(normalized))
        return len(normalized)

    async def apply_batch(
        self,
        puts: Mapping[str, Any],
        removes: Sequence[str],
        *,
        operation: str,
        path: str | None,
        before_removes: PhaseHook | None = None,
    ) -> None:
        """
        Exécute toutes les écritures (un seul `set` multi-clés) puis toutes les
        suppressions. `before_removes` marque la frontière entre les deux phases.
        """
        if puts:
            await self._call(self.store.set(dict(puts)), operation=operation, path=path, step="put")
        if before_removes is not None:
            await self._call(before_removes(), operation=operation, path=path, step="phase_boundary")
        if removes:
            await self._call(self.store.remove(list(removes)), operation=operation, path=path, step="remove")
