"""
# process_folders/folder_operations.py

Opérations validées sur les dossiers (create / rename / move / delete) et
émission des événements associés.

Toutes les entrées publiques retournent un OperationResult : les erreurs
typées (validation, conflit, introuvable, stockage) ne traversent jamais la
frontière appelant.

Hypothèse mono-écrivain : aucun verrou, l'appelant sérialise les opérations
concurrentes sur un même chemin.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Collection, Iterable
from dataclasses import replace
import inspect
from typing import Any, TypeVar

from bookmarkops.models.bookmark import (
    Bookmark,
    bookmark_key,
    is_valid_bookmark_record,
    parse_identity_key,
    strip_protocol,
)
from bookmarkops.models.event import FolderEvent, FolderEventListener, FolderEventType
from bookmarkops.models.exceptions import (
    BookmarkOpsError,
    ConflictError,
    ErrCode,
    NotFoundError,
    PathValidationError,
    ValidationError,
)
from bookmarkops.models.folders import Folder
from bookmarkops.models.result import ImportResult, OperationResult
from bookmarkops.models.tree import SortMode
from bookmarkops.models.types import JsonDict, now_ms
from bookmarkops.process_folders.cascade import execute_cascade, plan_cascade
from bookmarkops.process_folders.import_paths import (
    collect_required_folder_paths,
    find_missing_folder_paths,
    resolve_import_folder_path,
)
from bookmarkops.storage.bookmark_storage import BookmarkStorage
from bookmarkops.storage.folder_storage import FolderStorage, PhaseHook
from bookmarkops.store.kv_store import KeyValueStore
from bookmarkops.tree.selection import apply_selection
from bookmarkops.tree.tree_builder import Tree, build_tree
from bookmarkops.utils.logger import LoggerProtocol, ensure_logger
from bookmarkops.utils.path_utils import (
    MAX_DEPTH,
    SEPARATOR,
    FolderNameValidation,
    get_depth,
    get_folder_name,
    get_folder_name_validation,
    get_parent_path,
    has_name_conflict,
    is_descendant_of,
    is_same_or_descendant,
    is_valid_folder_name,
    join,
    normalize,
    validate_path,
)

T = TypeVar("T")


def _segments(path: str | None) -> list[str]:
    return (path or "").split(SEPARATOR)


def _clean_name(name: str) -> str:
    """
    Nom trimé ; ValidationError si la règle de nommage n'est pas respectée.
    """
    clean = name.strip() if isinstance(name, str) else ""
    if not is_valid_folder_name(clean):
        errors = list(get_folder_name_validation(name).errors) if isinstance(name, str) else ["empty"]
        raise ValidationError(f"Invalid folder name: {name!r}", ctx={"name": name, "errors": errors})
    return clean


class FolderOperationsManager:
    """
    Point d'entrée du moteur de dossiers.

    Args:
        store: Store clé-valeur partagé (dossiers, index, favoris).
        folder_storage: Accès dossiers (injectable pour les tests).
        bookmark_storage: Accès favoris (injectable pour les tests).
        logger: Logger injecté, sinon logger du module.
    """

    def __init__(
        self,
        store: KeyValueStore,
        *,
        folder_storage: FolderStorage | None = None,
        bookmark_storage: BookmarkStorage | None = None,
        logger: LoggerProtocol | None = None,
    ) -> None:
        self.logger = ensure_logger(logger, __name__)
        self.store = store
        self.folders = folder_storage or FolderStorage(store, logger=self.logger)
        self.bookmarks = bookmark_storage or BookmarkStorage(store, logger=self.logger)
        self._listeners: list[FolderEventListener] = []

    # --- Enveloppe résultat ----------------------------------------------------

    async def _guard(self, operation: str, awaitable: Awaitable[T]) -> OperationResult[T]:
        try:
            return OperationResult.ok(await awaitable)
        except BookmarkOpsError as exc:
            self.logger.warning("[FOLDER] %s refusé : %s", operation, exc)
            return OperationResult.fail(exc.with_context({"operation": operation}))
        except Exception as exc:  # pylint: disable=broad-except
            self.logger.exception("[FOLDER] %s : erreur inattendue", operation)
            return OperationResult.fail(
                BookmarkOpsError(str(exc) or type(exc).__name__, code=ErrCode.UNEXPECTED, ctx={"operation": operation})
            )

    # --- Create ----------------------------------------------------------------

    async def create_folder(self, parent_path: str | None, name: str) -> OperationResult[Folder]:
        return await self._guard("create", self._create_folder(parent_path, name))

    async def _create_folder(self, parent_path: str | None, name: str) -> Folder:
        clean = _clean_name(name)
        path = join(*_segments(parent_path), clean)
        validate_path(path)

        folder = await self.folders.create(path)
        await self._emit("create", folder.path)
        return folder

    # --- Rename ----------------------------------------------------------------

    async def rename_folder(
        self,
        path: str,
        new_name: str,
        *,
        before_removes: PhaseHook | None = None,
    ) -> OperationResult[dict[str, str]]:
        """
        Renomme un dossier et propage le nouveau préfixe à tout le sous-arbre.

        `before_removes` est appelé entre la phase d'écriture et la phase de
        suppression de la cascade.
        """
        return await self._guard("rename", self._rename_folder(path, new_name, before_removes))

    async def _rename_folder(self, path: str, new_name: str, before_removes: PhaseHook | None) -> dict[str, str]:
        # validations pures, avant toute lecture
        clean = _clean_name(new_name)
        old_path = normalize(path)
        new_path = join(*_segments(get_parent_path(old_path)), clean)
        validate_path(new_path)

        folders = await self.folders.get_all()
        if not any(f.path == old_path for f in folders):
            raise NotFoundError(f"Folder not found: {old_path}", ctx={"path": old_path})

        result = {"old_path": old_path, "new_path": new_path}
        if new_path == old_path:
            self.logger.debug("[FOLDER] Rename sans effet : %s", old_path)
            return result

        siblings = [f.name for f in FolderStorage.siblings_of(old_path, folders) if f.path != old_path]
        if has_name_conflict(clean, siblings):
            raise ConflictError(f'Folder "{clean}" already exists at this level', ctx={"path": old_path, "name": clean})

        bookmarks = await self.bookmarks.get_all_bookmarks()
        plan = plan_cascade(old_path, new_path, folders, bookmarks, operation="rename", now=now_ms())
        await execute_cascade(self.folders, plan, before_removes=before_removes, logger=self.logger)

        self.logger.info("[FOLDER] Renommé : %s -> %s", old_path, new_path)
        await self._emit("rename", old_path, new_path)
        return result

    # --- Move ------------------------------------------------------------------

    def can_move(self, source_path: str, target_parent_path: str | None) -> bool:
        """
        Contrôle pur (sans I/O) : pas de cycle, profondeur du dossier déplacé ≤ MAX_DEPTH.
        """
        try:
            source = normalize(source_path)
            target = (normalize(target_parent_path) if target_parent_path else "") or None
        except PathValidationError:
            return False
        if target is not None and is_same_or_descendant(target, source):
            return False
        return get_depth(target or "") + 1 <= MAX_DEPTH

    async def move_folder(
        self,
        source_path: str,
        target_parent_path: str | None,
        *,
        before_removes: PhaseHook | None = None,
    ) -> OperationResult[dict[str, str]]:
        """
        Déplace un dossier sous un nouveau parent (`None` / "" = racine).
        """
        return await self._guard("move", self._move_folder(source_path, target_parent_path, before_removes))

    async def _move_folder(
        self,
        source_path: str,
        target_parent_path: str | None,
        before_removes: PhaseHook | None,
    ) -> dict[str, str]:
        source = normalize(source_path)
        target = (normalize(target_parent_path) if target_parent_path else "") or None

        if target is not None and is_same_or_descendant(target, source):
            raise ConflictError(
                "Cannot move a folder into itself or its descendants",
                ctx={"path": source, "target": target},
            )

        name = get_folder_name(source)
        new_path = join(*_segments(target), name)
        validate_path(new_path)

        folders = await self.folders.get_all()
        by_path = {f.path: f for f in folders}
        if source not in by_path:
            raise NotFoundError(f"Folder not found: {source}", ctx={"path": source})
        if target is not None and target not in by_path:
            raise NotFoundError(f"Target folder not found: {target}", ctx={"path": source, "target": target})

        deepest = max(f.depth for f in folders if is_same_or_descendant(f.path, source))
        resulting_depth = deepest - by_path[source].depth + get_depth(new_path)
        if resulting_depth > MAX_DEPTH:
            raise PathValidationError(
                f"Move would exceed maximum depth {MAX_DEPTH} (got {resulting_depth})",
                new_path,
                rule="depth",
            )

        result = {"old_path": source, "new_path": new_path}
        if new_path == source:
            self.logger.debug("[FOLDER] Move sans effet : %s", source)
            return result

        siblings = [f.name for f in folders if f.parent_path == target and f.path != source]
        if has_name_conflict(name, siblings):
            raise ConflictError(
                f'Folder "{name}" already exists in destination',
                ctx={"path": source, "target": target},
            )

        bookmarks = await self.bookmarks.get_all_bookmarks()
        plan = plan_cascade(source, new_path, folders, bookmarks, operation="move", now=now_ms())
        await execute_cascade(self.folders, plan, before_removes=before_removes, logger=self.logger)

        self.logger.info("[FOLDER] Déplacé : %s -> %s", source, new_path)
        await self._emit("move", source, new_path)
        return result

    # --- Delete ----------------------------------------------------------------

    async def _blockers(self, path: str) -> tuple[list[str], list[Bookmark]]:
        folders = await self.folders.get_all()
        children = [f.path for f in folders if is_descendant_of(f.path, path)]
        bookmarks = [
            b
            for b in await self.bookmarks.get_all_bookmarks()
            if b.folder_path and is_same_or_descendant(b.folder_path, path)
        ]
        return children, bookmarks

    async def can_delete(self, path: str) -> bool:
        """
        Vrai ssi le dossier existe et que son sous-arbre est vide.
        """
        result = await self._guard("can_delete", self._can_delete(path))
        return bool(result.data)

    async def _can_delete(self, path: str) -> bool:
        normalized = normalize(path)
        if await self.folders.get(normalized) is None:
            return False
        children, bookmarks = await self._blockers(normalized)
        return not children and not bookmarks

    async def delete_folder(self, path: str) -> OperationResult[dict[str, str]]:
        """
        Supprime un dossier vide. Pas de suppression en cascade.
        """
        return await self._guard("delete", self._delete_folder(path))

    async def _delete_folder(self, path: str) -> dict[str, str]:
        normalized = normalize(path)
        if await self.folders.get(normalized) is None:
            raise NotFoundError(f"Folder not found: {normalized}", ctx={"path": normalized})

        children, bookmarks = await self._blockers(normalized)
        if children:
            raise ConflictError(
                "Cannot delete folder with subfolders",
                ctx={"path": normalized, "children": children},
            )
        if bookmarks:
            raise ConflictError(
                f"Cannot delete folder containing {len(bookmarks)} bookmark(s)",
                ctx={"path": normalized, "bookmarks": len(bookmarks)},
            )

        await self.folders.delete(normalized)
        await self._emit("delete", normalized)
        return {"path": normalized}

    # --- Lecture ---------------------------------------------------------------

    async def list_folders(self) -> OperationResult[list[Folder]]:
        return await self._guard("list", self.folders.get_all())

    async def get_folder(self, path: str) -> OperationResult[Folder]:
        return await self._guard("get", self._get_folder(path))

    async def _get_folder(self, path: str) -> Folder:
        folder = await self.folders.get(path)
        if folder is None:
            raise NotFoundError(f"Folder not found: {path}", ctx={"path": path})
        return folder

    def validate_folder_name(self, name: str) -> FolderNameValidation:
        return get_folder_name_validation(name)

    def build_tree(
        self,
        folders: Iterable[Folder],
        bookmarks: Iterable[Bookmark],
        expanded_paths: Collection[str] = frozenset(),
        selected_path: str | None = None,
        sort_mode: SortMode | str = SortMode.ALPHA_ASC,
        selected_keys: frozenset[str] | None = None,
    ) -> OperationResult[Tree]:
        try:
            tree = build_tree(folders, bookmarks, expanded_paths, selected_path, sort_mode)
        except (ValueError, TypeError) as exc:
            self.logger.error("[TREE] Construction impossible : %s", exc)
            return OperationResult.fail(ValidationError(str(exc), ctx={"operation": "build_tree"}))
        if selected_keys is not None:
            tree = apply_selection(tree, selected_keys)
        return OperationResult.ok(tree)

    async def load_tree(
        self,
        expanded_paths: Collection[str] = frozenset(),
        selected_path: str | None = None,
        sort_mode: SortMode | str = SortMode.ALPHA_ASC,
        selected_keys: frozenset[str] | None = None,
    ) -> OperationResult[Tree]:
        """
        Relit dossiers + favoris puis reconstruit l'arbre (rafraîchissement UI).
        """
        listed = await self._guard("tree", self._snapshot())
        if listed.error is not None:
            return OperationResult.fail(listed.error)
        folders, bookmarks = listed.data or ([], [])
        return self.build_tree(folders, bookmarks, expanded_paths, selected_path, sort_mode, selected_keys)

    async def _snapshot(self) -> tuple[list[Folder], list[Bookmark]]:
        return await self.folders.get_all(), await self.bookmarks.get_all_bookmarks()

    # --- Favoris ---------------------------------------------------------------

    async def _require_folder(self, folder_path: str | None) -> str | None:
        if not folder_path:
            return None
        normalized = normalize(folder_path)
        if await self.folders.get(normalized) is None:
            raise NotFoundError(f"Folder not found: {normalized}", ctx={"path": normalized})
        return normalized

    async def save_bookmark(
        self,
        url: str,
        position: int,
        user_message: str,
        *,
        folder_path: str | None = None,
        **fields: Any,
    ) -> OperationResult[Bookmark]:
        return await self._guard("save_bookmark", self._save_bookmark(url, position, user_message, folder_path, fields))

    async def _save_bookmark(
        self,
        url: str,
        position: int,
        user_message: str,
        folder_path: str | None,
        fields: dict[str, Any],
    ) -> Bookmark:
        target = await self._require_folder(folder_path)
        return await self.bookmarks.save(url, position, user_message, folder_path=target, **fields)

    async def assign_bookmark_folder(self, url: str, position: int, folder_path: str | None) -> OperationResult[Bookmark]:
        """
        Rattache un favori existant à un dossier existant (`None` = sans dossier).
        """
        return await self._guard("assign_bookmark", self._assign_bookmark_folder(url, position, folder_path))

    async def _assign_bookmark_folder(self, url: str, position: int, folder_path: str | None) -> Bookmark:
        target = await self._require_folder(folder_path)
        return await self.bookmarks.update_bookmark(url, position, folder_path=target)

    async def ensure_folder_paths(self, folder_paths: Iterable[str | None]) -> OperationResult[list[str]]:
        """
        Crée les dossiers manquants (ancêtres compris, parents d'abord).

        Retourne les chemins effectivement créés.
        """
        return await self._guard("ensure_folders", self._ensure_folder_paths(folder_paths))

    async def _ensure_folder_paths(self, folder_paths: Iterable[str | None]) -> list[str]:
        existing = {f.path for f in await self.folders.get_all()}
        created: list[str] = []
        for path in collect_required_folder_paths(folder_paths):
            if path in existing:
                continue
            folder = await self.folders.create(path)
            existing.add(folder.path)
            created.append(folder.path)
            await self._emit("create", folder.path)
        if created:
            self.logger.info("[FOLDER] %d dossier(s) créé(s) pour l'import", len(created))
        return created

    # --- Import / export -------------------------------------------------------

    async def import_bookmarks(self, records: Any, *, skip_duplicates: bool = False) -> OperationResult[ImportResult]:
        """
        Importe une liste d'enregistrements favoris (format de `export_bookmarks`).

        Les dossiers manquants sont créés, ancêtres compris, avant l'écriture
        groupée des favoris ; un favori sans dossier valide atterrit dans
        "Import". Un doublon (même url + position) est écrasé, sauf avec
        `skip_duplicates`.
        """
        return await self._guard("import", self._import_bookmarks(records, skip_duplicates))

    async def _import_bookmarks(self, records: Any, skip_duplicates: bool) -> ImportResult:
        if not isinstance(records, list):
            raise ValidationError(
                "Invalid format: expected an array of bookmarks",
                ctx={"type": type(records).__name__},
            )

        candidates: dict[str, Bookmark] = {}
        invalid = 0
        for index, raw in enumerate(records):
            if not is_valid_bookmark_record(raw):
                invalid += 1
                self.logger.warning("[IMPORT] Favori invalide à l'index %d", index)
                continue
            parsed = Bookmark.from_record(raw)
            bookmark = replace(
                parsed,
                url_without_protocol=strip_protocol(parsed.url),
                folder_path=resolve_import_folder_path(parsed.folder_path),
            )
            candidates[bookmark.key] = bookmark
        if not candidates:
            raise ValidationError("No valid bookmarks found", ctx={"invalid": invalid})

        to_import: list[Bookmark] = []
        skipped = 0
        for bookmark in candidates.values():
            if skip_duplicates and await self.bookmarks.is_bookmarked(bookmark.url, bookmark.position):
                skipped += 1
                self.logger.debug("[IMPORT] Doublon ignoré : %s", bookmark.identity_key)
                continue
            to_import.append(bookmark)

        created: list[str] = []
        for path in find_missing_folder_paths(to_import, await self.folders.get_all()):
            folder = await self.folders.create(path)
            created.append(folder.path)
            await self._emit("create", folder.path)

        imported = await self.bookmarks.put_many(to_import)
        self.logger.info(
            "[IMPORT] %d importés, %d ignorés, %d invalides, %d dossier(s) créé(s)",
            imported,
            skipped,
            invalid,
            len(created),
        )
        return ImportResult(imported=imported, skipped=skipped, invalid=invalid, created_folders=tuple(created))

    async def export_bookmarks(self) -> OperationResult[list[JsonDict]]:
        """
        Tous les favoris au format enregistrement, du plus récent au plus ancien.
        """
        return await self._guard("export", self._export_bookmarks())

    async def _export_bookmarks(self) -> list[JsonDict]:
        bookmarks = await self.bookmarks.get_all_bookmarks()
        self.logger.info("[EXPORT] %d favoris exportés", len(bookmarks))
        return [b.to_record() for b in bookmarks]

    async def delete_bookmarks(self, keys: Iterable[str]) -> OperationResult[int]:
        """
        Suppression groupée par clés d'identité ("<url sans protocole>:<position>"),
        typiquement `selected_bookmark_keys` de l'arbre. Les clés mal formées
        sont ignorées.
        """
        return await self._guard("delete_bookmarks", self._delete_bookmarks(keys))

    async def _delete_bookmarks(self, keys: Iterable[str]) -> int:
        storage_keys: list[str] = []
        for key in keys:
            parsed = parse_identity_key(key)
            if parsed is None:
                self.logger.warning("[BOOKMARK] Clé ignorée : %r", key)
                continue
            storage_keys.append(bookmark_key(*parsed))
        return await self.bookmarks.remove_many(storage_keys)

    async def bookmarked_positions(self, url: str) -> OperationResult[list[int]]:
        return await self._guard("positions", self._bookmarked_positions(url))

    async def _bookmarked_positions(self, url: str) -> list[int]:
        return sorted(await self.bookmarks.load_all_positions(url))

    # --- Événements ------------------------------------------------------------

    def on_folder_event(self, listener: FolderEventListener) -> Callable[[], None]:
        """
        Abonne `listener` ; retourne la fonction de désabonnement.
        """
        self._listeners.append(listener)
        return lambda: self.remove_event_listener(listener)

    def remove_event_listener(self, listener: FolderEventListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def clear_event_listeners(self) -> None:
        self._listeners.clear()

    async def _emit(self, event_type: FolderEventType, path: str, new_path: str | None = None) -> None:
        event: FolderEvent = {"type": event_type, "path": path, "timestamp": now_ms()}
        if new_path is not None:
            event["new_path"] = new_path

        for listener in list(self._listeners):
            try:
                outcome = listener(event)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as exc:  # pylint: disable=broad-except
                self.logger.error("[EVENT] Listener en échec (%s %s) : %s", event_type, path, exc)
