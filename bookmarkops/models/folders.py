"""
# models/folders.py
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

from bookmarkops.models.types import JsonDict

FOLDER_KEY_PREFIX = "folder:"


def folder_key(path: str) -> str:
    """
    Clé de stockage d'un dossier : préfixe fixe + chemin normalisé.
    """
    return f"{FOLDER_KEY_PREFIX}{path}"


@dataclass(frozen=True, slots=True, kw_only=True)
class Folder:
    """
    Représente un enregistrement `folder:<path>` du store.

    Attributes:
        path: Chemin complet normalisé (identité du dossier).
        name: Dernier segment du chemin.
        depth: Nombre de segments (1 = racine).
        created_at: Création, epoch ms.
        updated_at: Dernière modification (rename/move), epoch ms.
    """

    path: str
    name: str
    depth: int
    created_at: int
    updated_at: int

    # --- Helpers pratiques -----------------------------------------------------

    @property
    def key(self) -> str:
        return folder_key(self.path)

    @property
    def parent_path(self) -> str | None:
        """
        Chemin du parent, ou None si racine.
        """
        parent, sep, _ = self.path.rpartition("/")
        return parent if sep else None

    def with_new_path(self, new_path: str, *, updated_at: int) -> Folder:
        """
        Nouvelle instance au chemin donné (name / depth recalculés).
        """
        return replace(
            self,
            path=new_path,
            name=new_path.rpartition("/")[2],
            depth=new_path.count("/") + 1,
            updated_at=updated_at,
        )

    def to_record(self) -> JsonDict:
        return {
            "path": self.path,
            "name": self.name,
            "depth": self.depth,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_record(cls, row: Mapping[str, Any]) -> Folder:
        """
        Construit depuis la valeur brute lue dans le store.

        Lève KeyError / ValueError / TypeError si l'enregistrement est corrompu.
        """
        path = str(row["path"])
        return cls(
            path=path,
            name=str(row.get("name") or path.rpartition("/")[2]),
            depth=int(row.get("depth") or path.count("/") + 1),
            created_at=int(row["created_at"]),
            updated_at=int(row.get("updated_at") or row["created_at"]),
        )
