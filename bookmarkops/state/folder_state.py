"""
# state/folder_state.py

Petit état UI persisté : chemins dépliés + dernier dossier sélectionné.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from bookmarkops.models.event import FolderEvent
from bookmarkops.models.exceptions import StorageError
from bookmarkops.store.kv_store import KeyValueStore
from bookmarkops.utils.logger import LoggerProtocol, ensure_logger
from bookmarkops.utils.path_utils import get_ancestors, is_same_or_descendant, update_path_prefix

LAST_SELECTED_KEY = "last_selected_folder_path"
EXPANDED_KEY = "expanded_folder_paths"


class FolderState:
    """
    Cache mémoire de l'état UI, synchronisé avec le store à la demande.

    `handle_folder_event` se branche sur `FolderOperationsManager.on_folder_event`
    pour garder le cache cohérent après un rename / move / delete.
    """

    def __init__(self, store: KeyValueStore, *, logger: LoggerProtocol | None = None) -> None:
        self.store = store
        self.logger = ensure_logger(logger, __name__)
        self._expanded: set[str] = set()
        self._selected: str | None = None

    async def _write(self, items: dict[str, Any], step: str) -> None:
        try:
            await self.store.set(items)
        except Exception as exc:  # pylint: disable=broad-except
            raise StorageError(str(exc), operation="state", path=self._selected, step=step) from exc

    async def load(self) -> None:
        """
        Recharge l'état ; les ancêtres de la dernière sélection sont dépliés.
        """
        selected = await self.store.get(LAST_SELECTED_KEY)
        expanded = await self.store.get(EXPANDED_KEY)

        self._selected = selected if isinstance(selected, str) and selected else None
        self._expanded = {p for p in expanded if isinstance(p, str)} if isinstance(expanded, list) else set()
        if self._selected:
            self._expanded.update(get_ancestors(self._selected))
        self.logger.debug("[STATE] Chargé : %s", self.summary())

    async def save_last_selected(self, path: str | None) -> None:
        self._selected = path or None
        await self._write({LAST_SELECTED_KEY: self._selected}, "save_selected")

    async def save_expanded(self) -> None:
        await self._write({EXPANDED_KEY: sorted(self._expanded)}, "save_expanded")

    # --- Dépliage --------------------------------------------------------------

    def toggle_expand(self, path: str) -> bool:
        """
        Bascule le dépliage ; retourne le nouvel état.
        """
        if path in self._expanded:
            self._expanded.discard(path)
            return False
        self._expanded.add(path)
        return True

    def expand(self, path: str) -> None:
        self._expanded.add(path)

    def collapse(self, path: str) -> None:
        self._expanded.discard(path)

    def expand_path_to(self, path: str) -> None:
        self._expanded.update(get_ancestors(path))

    def collapse_all(self) -> None:
        self._expanded.clear()

    def expand_all(self, paths: Iterable[str]) -> None:
        self._expanded.update(paths)

    def is_expanded(self, path: str) -> bool:
        return path in self._expanded

    @property
    def expanded_paths(self) -> frozenset[str]:
        return frozenset(self._expanded)

    # --- Sélection -------------------------------------------------------------

    @property
    def selected_path(self) -> str | None:
        return self._selected

    def set_selected_path(self, path: str | None) -> None:
        self._selected = path or None

    def is_selected(self, path: str) -> bool:
        return self._selected == path

    def clear(self) -> None:
        self._expanded.clear()
        self._selected = None

    def summary(self) -> dict[str, Any]:
        return {"selected": self._selected, "expanded": sorted(self._expanded)}

    # --- Événements ------------------------------------------------------------

    async def handle_folder_event(self, event: FolderEvent) -> None:
        """
        Réécrit (rename / move) ou oublie (delete) les chemins mis en cache.
        """
        path = event["path"]
        if event["type"] in ("rename", "move") and "new_path" in event:
            new_path = event["new_path"]
            self._expanded = {update_path_prefix(path, new_path, p) for p in self._expanded}
            if self._selected and is_same_or_descendant(self._selected, path):
                self._selected = update_path_prefix(path, new_path, self._selected)
        elif event["type"] == "delete":
            self._expanded = {p for p in self._expanded if not is_same_or_descendant(p, path)}
            if self._selected and is_same_or_descendant(self._selected, path):
                self._selected = None
        else:
            return

        await self._write({LAST_SELECTED_KEY: self._selected, EXPANDED_KEY: sorted(self._expanded)}, "event")
        self.logger.debug("[STATE] %s %s -> %s", event["type"], path, self.summary())
