"""
# tree/selection.py

Sélection tri-state (cases à cocher) : réducteur pur sur un arbre immuable.

L'état est un `frozenset` de clés :
- `folder:<path>` pour un dossier entièrement sélectionné ;
- `<url_sans_protocole>:<position>` pour un favori.

Chaque bascule retourne un nouvel ensemble ; la chaîne complète des ancêtres
est recalculée du bas vers le haut après chaque bascule.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

from bookmarkops.models.bookmark import Bookmark
from bookmarkops.models.folders import folder_key
from bookmarkops.models.tree import FolderTreeNode, SelectionState
from bookmarkops.tree.tree_builder import Tree, find_node, find_path_to_node, flatten_tree

Selection = frozenset[str]


def folder_selection_key(path: str) -> str:
    return folder_key(path)


def subtree_keys(node: FolderTreeNode) -> set[str]:
    """
    Clé du dossier + clés de tous les dossiers et favoris descendants.
    """
    keys = {folder_selection_key(node.path)}
    keys.update(b.identity_key for b in node.bookmarks)
    for child in node.children:
        keys |= subtree_keys(child)
    return keys


def immediate_keys(node: FolderTreeNode) -> list[str]:
    """
    Clés des enfants directs : sous-dossiers et favoris propres.
    """
    return [folder_selection_key(c.path) for c in node.children] + [b.identity_key for b in node.bookmarks]


def recompute_ancestors(nodes: Tree, selected: Selection, chain: Iterable[str]) -> Selection:
    """
    Recalcule les clés de dossier de `chain` (ordre racine -> feuille), du bas vers le haut.

    Un dossier est sélectionné ssi toutes ses clés immédiates le sont. Un dossier
    vide conserve son état.
    """
    result = set(selected)
    for path in reversed(list(chain)):
        node = find_node(nodes, path)
        if node is None:
            continue
        children = immediate_keys(node)
        if not children:
            continue
        key = folder_selection_key(path)
        if all(k in result for k in children):
            result.add(key)
        else:
            result.discard(key)
    return frozenset(result)


def toggle_folder(nodes: Tree, selected: Selection, path: str, checked: bool | None = None) -> Selection:
    """
    Coche / décoche un dossier et tout son sous-arbre, puis met à jour ses ancêtres.

    `checked=None` inverse l'état courant du dossier.
    """
    node = find_node(nodes, path)
    if node is None:
        return selected
    if checked is None:
        checked = folder_selection_key(path) not in selected

    keys = subtree_keys(node)
    updated = frozenset(selected | keys) if checked else frozenset(selected - keys)
    ancestors = find_path_to_node(nodes, path)[:-1]
    return recompute_ancestors(nodes, updated, ancestors)


def _owner_path(nodes: Tree, bookmark_key: str) -> str | None:
    for node in flatten_tree(nodes):
        if any(b.identity_key == bookmark_key for b in node.bookmarks):
            return node.path
    return None


def toggle_bookmark(nodes: Tree, selected: Selection, key: str, checked: bool | None = None) -> Selection:
    if checked is None:
        checked = key not in selected
    updated = frozenset(selected | {key}) if checked else frozenset(selected - {key})

    owner = _owner_path(nodes, key)
    if owner is None:
        return updated
    return recompute_ancestors(nodes, updated, find_path_to_node(nodes, owner))


def folder_selection_state(node: FolderTreeNode, selected: Selection) -> SelectionState:
    if folder_selection_key(node.path) in selected:
        return SelectionState.SELECTED
    if any(k in selected for k in subtree_keys(node)):
        return SelectionState.PARTIAL
    return SelectionState.UNSELECTED


def apply_selection(nodes: Tree, selected: Selection) -> Tree:
    """
    Nouvel arbre annoté avec l'état tri-state de chaque dossier.
    """
    return tuple(
        replace(
            node,
            children=apply_selection(node.children, selected),
            selection=folder_selection_state(node, selected),
        )
        for node in nodes
    )


def selected_bookmarks(nodes: Tree, selected: Selection) -> list[Bookmark]:
    return [b for node in flatten_tree(nodes) for b in node.bookmarks if b.identity_key in selected]


def selected_bookmark_keys(nodes: Tree, selected: Selection) -> list[str]:
    return [b.identity_key for b in selected_bookmarks(nodes, selected)]


def select_all(nodes: Tree) -> Selection:
    keys: set[str] = set()
    for node in nodes:
        keys |= subtree_keys(node)
    return frozenset(keys)
