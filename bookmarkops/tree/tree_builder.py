"""
# tree/tree_builder.py

Transformation pure (dossiers plats, favoris plats, dépliés, sélection) -> arbre
immuable pour l'affichage.

Algorithme :
1. tri des dossiers par chemin (un parent est un préfixe strict de ses enfants,
   il est donc toujours rencontré avant eux) ;
2. une passe : un nœud par dossier, favoris rattachés par égalité exacte de
   `folder_path`, nœud accroché au parent déjà construit ou à la racine ;
3. tri récursif des enfants par nom et des favoris selon `sort_mode`.

Le résultat ne dépend pas de l'ordre des entrées.
"""

from __future__ import annotations

from collections.abc import Callable, Collection, Iterable, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from bookmarkops.models.bookmark import Bookmark
from bookmarkops.models.folders import Folder
from bookmarkops.models.tree import FolderTreeNode, SortMode
from bookmarkops.utils.path_utils import collation_key

Tree = tuple[FolderTreeNode, ...]


@dataclass
class _Draft:
    folder: Folder
    children: list[_Draft] = field(default_factory=list)
    bookmarks: list[Bookmark] = field(default_factory=list)


def _bookmark_sort_key(mode: SortMode) -> Callable[[Bookmark], Any]:
    if mode in (SortMode.TIME_ASC, SortMode.TIME_DESC):
        return lambda b: (b.timestamp, collation_key(b.title), b.key)
    return lambda b: (collation_key(b.title), b.timestamp, b.key)


def sort_bookmarks(bookmarks: Iterable[Bookmark], sort_mode: SortMode | str = SortMode.ALPHA_ASC) -> list[Bookmark]:
    mode = SortMode(sort_mode)
    descending = mode in (SortMode.ALPHA_DESC, SortMode.TIME_DESC)
    return sorted(bookmarks, key=_bookmark_sort_key(mode), reverse=descending)


def _freeze(
    drafts: Sequence[_Draft],
    expanded: Collection[str],
    selected_path: str | None,
    mode: SortMode,
) -> Tree:
    ordered = sorted(drafts, key=lambda d: (collation_key(d.folder.name), d.folder.path))
    return tuple(
        FolderTreeNode(
            folder=d.folder,
            children=_freeze(d.children, expanded, selected_path, mode),
            bookmarks=tuple(sort_bookmarks(d.bookmarks, mode)),
            is_expanded=d.folder.path in expanded,
            is_selected=d.folder.path == selected_path,
        )
        for d in ordered
    )


def build_tree(
    folders: Iterable[Folder],
    bookmarks: Iterable[Bookmark],
    expanded_paths: Collection[str] = frozenset(),
    selected_path: str | None = None,
    sort_mode: SortMode | str = SortMode.ALPHA_ASC,
) -> Tree:
    """
    Construit les nœuds racine de l'arbre.

    Un dossier dont le parent est absent de la liste est rattaché à la racine
    (état transitoire possible après un crash, cf. reconcile).
    """
    # doublons de chemin : on garde la version la plus récente
    unique: dict[str, Folder] = {}
    for folder in folders:
        current = unique.get(folder.path)
        if current is None or (folder.updated_at, folder.created_at) > (current.updated_at, current.created_at):
            unique[folder.path] = folder

    by_folder: dict[str, list[Bookmark]] = {}
    for bookmark in bookmarks:
        if bookmark.folder_path:
            by_folder.setdefault(bookmark.folder_path, []).append(bookmark)

    roots: list[_Draft] = []
    drafts: dict[str, _Draft] = {}
    for folder in sorted(unique.values(), key=lambda f: collation_key(f.path)):
        draft = _Draft(folder=folder, bookmarks=by_folder.get(folder.path, []))
        drafts[folder.path] = draft
        parent = folder.parent_path
        if parent is not None and parent in drafts:
            drafts[parent].children.append(draft)
        else:
            roots.append(draft)

    return _freeze(roots, expanded_paths, selected_path, SortMode(sort_mode))


# --- Requêtes dérivées ---------------------------------------------------------


def flatten_tree(nodes: Iterable[FolderTreeNode]) -> list[FolderTreeNode]:
    """
    Parcours en profondeur (pré-ordre).
    """
    result: list[FolderTreeNode] = []
    for node in nodes:
        result.append(node)
        result.extend(flatten_tree(node.children))
    return result


def find_path_to_node(nodes: Iterable[FolderTreeNode], target_path: str) -> list[str]:
    """
    Chaîne des chemins de la racine jusqu'à la cible (vide si absente).
    """
    for node in nodes:
        if node.folder.path == target_path:
            return [target_path]
        sub = find_path_to_node(node.children, target_path)
        if sub:
            return [node.folder.path, *sub]
    return []


def find_node(nodes: Iterable[FolderTreeNode], target_path: str) -> FolderTreeNode | None:
    for node in nodes:
        if node.folder.path == target_path:
            return node
        found = find_node(node.children, target_path)
        if found is not None:
            return found
    return None


def count_bookmarks(nodes: Iterable[FolderTreeNode]) -> int:
    return sum(len(node.bookmarks) + count_bookmarks(node.children) for node in nodes)


def get_total_bookmark_count(node: FolderTreeNode) -> int:
    return count_bookmarks((node,))


def get_all_bookmarks(nodes: Iterable[FolderTreeNode]) -> list[Bookmark]:
    result: list[Bookmark] = []
    for node in nodes:
        result.extend(node.bookmarks)
        result.extend(get_all_bookmarks(node.children))
    return result


def filter_tree(nodes: Tree, query: str) -> Tree:
    """
    Élague l'arbre aux nœuds correspondant à la recherche (+ leurs ancêtres).

    Un dossier est conservé si son nom correspond (il garde alors tous ses
    favoris), s'il contient des favoris correspondants ou un descendant conservé.
    Les branches conservées sont dépliées.
    """
    if not query or not query.strip():
        return nodes
    lowered = query.strip().lower()

    kept: list[FolderTreeNode] = []
    for node in nodes:
        children = filter_tree(node.children, query)
        name_match = lowered in node.folder.name.lower()
        matching = node.bookmarks if name_match else tuple(b for b in node.bookmarks if b.matches(lowered))
        if name_match or matching or children:
            kept.append(replace(node, children=children, bookmarks=matching, is_expanded=True))
    return tuple(kept)


def update_node_state(nodes: Tree, target_path: str, **updates: Any) -> Tree:
    """
    Nouvel arbre où le nœud cible reçoit `updates` (is_expanded, is_selected, selection).
    """
    result: list[FolderTreeNode] = []
    for node in nodes:
        if node.folder.path == target_path:
            result.append(replace(node, **updates))
        elif node.children:
            result.append(replace(node, children=update_node_state(node.children, target_path, **updates)))
        else:
            result.append(node)
    return tuple(result)


def expand_path_to(nodes: Tree, target_path: str) -> Tree:
    updated = nodes
    for path in find_path_to_node(nodes, target_path):
        updated = update_node_state(updated, path, is_expanded=True)
    return updated


def collapse_all(nodes: Tree) -> Tree:
    return tuple(replace(node, is_expanded=False, children=collapse_all(node.children)) for node in nodes)


def tree_to_dict(nodes: Iterable[FolderTreeNode]) -> list[dict[str, Any]]:
    """
    Représentation sérialisable (export YAML/JSON de la CLI).
    """
    return [
        {
            "path": node.folder.path,
            "name": node.folder.name,
            "expanded": node.is_expanded,
            "selected": node.is_selected,
            "selection": str(node.selection),
            "bookmarks": [{"title": b.title, "url": b.url, "position": b.position} for b in node.bookmarks],
            "children": tree_to_dict(node.children),
        }
        for node in nodes
    ]
