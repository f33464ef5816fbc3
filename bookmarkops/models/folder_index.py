"""
# models/folder_index.py

Index global des chemins de dossiers.

Le store ne sait pas lister par préfixe : cet index est le seul moyen
d'énumérer les dossiers. Il est considéré comme faisant foi pour le listing ;
`reconcile()` le reconstruit à partir d'un scan complet quand on en dispose
(passe de réparation, cf. services/reconcile_service.py).
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

from bookmarkops.utils.path_utils import collation_key, update_path_prefix

FOLDER_INDEX_KEY = "folder_paths"


def _dedup(paths: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(paths))


@dataclass(frozen=True, slots=True)
class IndexDiff:
    missing: tuple[str, ...]
    ghosts: tuple[str, ...]
    duplicates: tuple[str, ...]

    @property
    def is_clean(self) -> bool:
        return not (self.missing or self.ghosts or self.duplicates)


@dataclass(frozen=True, slots=True)
class FolderIndex:
    """
    Valeur immuable : chaque opération retourne un nouvel index.
    """

    paths: tuple[str, ...] = ()

    @classmethod
    def from_value(cls, raw: Any) -> FolderIndex:
        """
        Construit depuis la valeur stockée ; une valeur illisible donne un index vide.
        """
        if not isinstance(raw, list):
            return cls()
        return cls(tuple(p for p in raw if isinstance(p, str) and p))

    def to_value(self) -> list[str]:
        return list(self.paths)

    def __contains__(self, path: object) -> bool:
        return path in self.paths

    def __iter__(self) -> Iterator[str]:
        return iter(self.paths)

    def __len__(self) -> int:
        return len(self.paths)

    def add(self, path: str) -> FolderIndex:
        if path in self.paths:
            return self
        return FolderIndex((*self.paths, path))

    def remove(self, path: str) -> FolderIndex:
        return self.remove_many((path,))

    def remove_many(self, paths: Iterable[str]) -> FolderIndex:
        dropped = set(paths)
        return FolderIndex(tuple(p for p in self.paths if p not in dropped))

    def rewrite_prefix(self, old_prefix: str, new_prefix: str) -> FolderIndex:
        """
        Même substitution de préfixe que pour les enregistrements (rename / move).
        """
        return FolderIndex(_dedup(update_path_prefix(old_prefix, new_prefix, p) for p in self.paths))

    def duplicates(self) -> tuple[str, ...]:
        seen: set[str] = set()
        dups: list[str] = []
        for p in self.paths:
            if p in seen and p not in dups:
                dups.append(p)
            seen.add(p)
        return tuple(dups)

    def diff(self, record_paths: Iterable[str]) -> IndexDiff:
        """
        Compare l'index aux chemins réellement présents dans le store.
        """
        records = set(record_paths)
        indexed = set(self.paths)
        return IndexDiff(
            missing=tuple(sorted(records - indexed, key=collation_key)),
            ghosts=tuple(sorted(indexed - records, key=collation_key)),
            duplicates=self.duplicates(),
        )

    def reconcile(self, record_paths: Iterable[str]) -> FolderIndex:
        """
        Index reconstruit : entrées fantômes retirées, enregistrements manquants
        ajoutés, doublons supprimés, ordre de tri déterministe.
        """
        return FolderIndex(tuple(sorted(set(record_paths), key=collation_key)))
