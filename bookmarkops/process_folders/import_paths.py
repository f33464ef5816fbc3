"""
# process_folders/import_paths.py
"""

from __future__ import annotations

from collections.abc import Iterable

from bookmarkops.models.bookmark import Bookmark
from bookmarkops.models.exceptions import PathValidationError
from bookmarkops.models.folders import Folder
from bookmarkops.utils.path_utils import MAX_DEPTH, SEPARATOR, collation_key, normalize, validate_path

IMPORT_FOLDER_PATH = "Import"


def _with_ancestors(raw_path: str | None) -> list[str]:
    candidate = raw_path if raw_path and raw_path.strip() else IMPORT_FOLDER_PATH
    try:
        segments = [s for s in normalize(candidate).split(SEPARATOR) if s][:MAX_DEPTH]
        if segments:
            validate_path(SEPARATOR.join(segments))
    except PathValidationError:
        segments = [IMPORT_FOLDER_PATH]

    if not segments:
        return [IMPORT_FOLDER_PATH]
    return [SEPARATOR.join(segments[:i]) for i in range(1, len(segments) + 1)]


def resolve_import_folder_path(raw_path: str | None) -> str:
    """
    Dossier cible d'un favori importé : chemin tronqué à MAX_DEPTH, "Import"
    si vide ou invalide.
    """
    return _with_ancestors(raw_path)[-1]


def collect_required_folder_paths(folder_paths: Iterable[str | None]) -> list[str]:
    """
    Chemins uniques nécessaires, ancêtres compris, triés par profondeur puis nom
    (ordre de création : un parent avant ses enfants).

    "Work/AI" -> ["Work", "Work/AI"] ; chemin vide ou invalide -> "Import".
    """
    needed: set[str] = set()
    for raw in folder_paths:
        needed.update(_with_ancestors(raw))
    return sorted(needed, key=lambda p: (p.count(SEPARATOR), collation_key(p)))


def collect_import_folder_paths(bookmarks: Iterable[Bookmark]) -> list[str]:
    return collect_required_folder_paths(b.folder_path for b in bookmarks)


def find_missing_folder_paths(bookmarks: Iterable[Bookmark], existing_folders: Iterable[Folder]) -> list[str]:
    """
    Chemins requis par les favoris mais absents des dossiers existants.
    """
    existing = {f.path for f in existing_folders}
    return [p for p in collect_import_folder_paths(bookmarks) if p not in existing]
