"""
# models/tree.py
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from bookmarkops.models.bookmark import Bookmark
from bookmarkops.models.folders import Folder


class SelectionState(StrEnum):
    SELECTED = "selected"
    PARTIAL = "partial"
    UNSELECTED = "unselected"


class SortMode(StrEnum):
    ALPHA_ASC = "alpha-asc"
    ALPHA_DESC = "alpha-desc"
    TIME_ASC = "time-asc"
    TIME_DESC = "time-desc"


@dataclass(frozen=True, slots=True)
class FolderTreeNode:
    """
    Nœud dérivé (jamais persisté), reconstruit à chaque rafraîchissement.

    Attributes:
        folder: Dossier porté par le nœud.
        children: Sous-dossiers, triés par nom.
        bookmarks: Favoris rattachés directement (non récursif).
        is_expanded: Dépliage UI.
        is_selected: Dossier courant (dernier sélectionné).
        selection: État tri-state des cases à cocher.
    """

    folder: Folder
    children: tuple[FolderTreeNode, ...] = ()
    bookmarks: tuple[Bookmark, ...] = ()
    is_expanded: bool = False
    is_selected: bool = False
    selection: SelectionState = SelectionState.UNSELECTED

    @property
    def path(self) -> str:
        return self.folder.path
