"""
# store/json_store.py

Store clé-valeur persistant dans un unique fichier JSON (backend CLI par défaut).
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
import json
import os
from pathlib import Path
import tempfile
from typing import Any

from bookmarkops.models.exceptions import StorageError
from bookmarkops.store.kv_store import as_key_list


def write_text_atomic(path: Path, content: str, *, encoding: str = "utf-8") -> Path:
    """
    Écrit de façon atomique (tmp -> replace) pour éviter les demi-fichiers.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(mode="w", encoding=encoding, dir=path.parent, delete=False) as tmp:
        tmp.write(content)
        tmp.flush()
        os.fsync(tmp.fileno())
        tmp_p = Path(tmp.name)
    os.replace(tmp_p, path)
    return path


class JsonFileStore:
    """
    Chaque appel relit puis réécrit le fichier entier ; un appel `set` est donc
    atomique à l'échelle du fichier, mais deux appels successifs ne le sont pas.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageError(f"Lecture du store impossible: {exc}", operation="load", path=str(self.path)) from exc
        if not isinstance(data, dict):
            raise StorageError("Store JSON invalide (objet attendu)", operation="load", path=str(self.path))
        return data

    def _dump(self, data: dict[str, Any]) -> None:
        try:
            write_text_atomic(self.path, json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True))
        except OSError as exc:
            raise StorageError(f"Écriture du store impossible: {exc}", operation="dump", path=str(self.path)) from exc

    def _set_sync(self, items: Mapping[str, Any]) -> None:
        data = self._load()
        data.update(items)
        self._dump(data)

    def _remove_sync(self, keys: list[str]) -> None:
        data = self._load()
        changed = False
        for key in keys:
            if key in data:
                del data[key]
                changed = True
        if changed:
            self._dump(data)

    async def get(self, key: str) -> Any | None:
        data = await asyncio.to_thread(self._load)
        return data.get(key)

    async def set(self, items: Mapping[str, Any]) -> None:
        await asyncio.to_thread(self._set_sync, dict(items))

    async def remove(self, keys: str | Iterable[str]) -> None:
        await asyncio.to_thread(self._remove_sync, as_key_list(keys))

    async def get_all(self, keys: Iterable[str] | None = None) -> dict[str, Any]:
        data = await asyncio.to_thread(self._load)
        if keys is None:
            return data
        return {k: data[k] for k in keys if k in data}
