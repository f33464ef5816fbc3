"""
# store/kv_store.py

Contrat du store clé-valeur consommé par le noyau + implémentation mémoire.

Le store est plat, asynchrone et sans transactions : pas de listing par
préfixe, pas d'écriture multi-clés atomique garantie, pas de notifications.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import copy
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class KeyValueStore(Protocol):
    """
    Interface minimale (async) : get / set (multi-clés) / remove / get_all.
    """

    async def get(self, key: str) -> Any | None: ...

    async def set(self, items: Mapping[str, Any]) -> None: ...

    async def remove(self, keys: str | Iterable[str]) -> None: ...

    async def get_all(self, keys: Iterable[str] | None = None) -> dict[str, Any]:
        """
        Lecture groupée des clés demandées (absentes ignorées), ou de tout le
        store si keys est None (réservé au listing complet / à la réparation).
        """
        ...


def as_key_list(keys: str | Iterable[str]) -> list[str]:
    if isinstance(keys, str):
        return [keys]
    return list(keys)


class MemoryStore:
    """
    Store en mémoire : valeurs copiées à l'entrée et à la sortie, comme après
    une sérialisation.
    """

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(dict(initial or {}))

    async def get(self, key: str) -> Any | None:
        return copy.deepcopy(self._data.get(key))

    async def set(self, items: Mapping[str, Any]) -> None:
        for key, value in items.items():
            self._data[key] = copy.deepcopy(value)

    async def remove(self, keys: str | Iterable[str]) -> None:
        for key in as_key_list(keys):
            self._data.pop(key, None)

    async def get_all(self, keys: Iterable[str] | None = None) -> dict[str, Any]:
        if keys is None:
            return copy.deepcopy(self._data)
        return {k: copy.deepcopy(self._data[k]) for k in keys if k in self._data}

    def snapshot(self) -> dict[str, Any]:
        """
        Copie synchrone du contenu (inspection / debug).
        """
        return copy.deepcopy(self._data)
