"""
# storage/bookmark_storage.py

Collection des favoris (enregistrements feuilles `bookmark:<url>:<position>`).

La clé ne dépend pas du dossier : un rename/move de dossier réécrit
`folder_path` sans jamais déplacer la clé.
"""

from __future__ import annotations

from collections.abc import Awaitable, Iterable
from dataclasses import dataclass, fields
from typing import Any, TypeVar

from bookmarkops.models.bookmark import (
    BOOKMARK_KEY_PREFIX,
    Bookmark,
    bookmark_key,
    default_title,
    is_valid_bookmark_record,
    strip_protocol,
)
from bookmarkops.models.exceptions import BookmarkOpsError, NotFoundError, StorageError, ValidationError
from bookmarkops.models.types import now_ms
from bookmarkops.store.kv_store import KeyValueStore
from bookmarkops.utils.logger import LoggerProtocol, ensure_logger

T = TypeVar("T")

_IMMUTABLE_FIELDS = {"url", "url_without_protocol", "position"}


@dataclass
class RepairStats:
    repaired: int = 0
    removed: int = 0


class BookmarkStorage:
    def __init__(self, store: KeyValueStore, *, logger: LoggerProtocol | None = None) -> None:
        self.store = store
        self.logger = ensure_logger(logger, __name__)

    async def _call(self, awaitable: Awaitable[T], *, operation: str, path: str | None, step: str) -> T:
        try:
            return await awaitable
        except BookmarkOpsError:
            raise
        except Exception as exc:  # pylint: disable=broad-except
            self.logger.error("[STORE] %s KO (%s, step=%s): %s", operation, path, step, exc)
            raise StorageError(str(exc) or type(exc).__name__, operation=operation, path=path, step=step) from exc

    async def save(
        self,
        url: str,
        position: int,
        user_message: str,
        *,
        ai_response: str | None = None,
        title: str | None = None,
        platform: str | None = None,
        timestamp: int | None = None,
        folder_path: str | None = None,
    ) -> Bookmark:
        bookmark = Bookmark(
            url=url,
            url_without_protocol=strip_protocol(url),
            position=position,
            user_message=user_message,
            ai_response=ai_response,
            timestamp=timestamp or now_ms(),
            title=title or default_title(user_message),
            platform=platform,
            folder_path=folder_path,
        )
        await self.put(bookmark)
        self.logger.info("[BOOKMARK] Enregistré position %s (%s)", position, bookmark.folder_path)
        return bookmark

    async def put(self, bookmark: Bookmark) -> None:
        await self._call(
            self.store.set({bookmark.key: bookmark.to_record()}),
            operation="save_bookmark",
            path=bookmark.folder_path,
            step="put",
        )

    async def put_many(self, bookmarks: Iterable[Bookmark]) -> int:
        """
        Écriture groupée (un seul `set` multi-clés).
        """
        items = {b.key: b.to_record() for b in bookmarks}
        if items:
            await self._call(self.store.set(items), operation="import_bookmarks", path=None, step="put_many")
        return len(items)

    async def get(self, url: str, position: int) -> Bookmark | None:
        raw = await self._call(
            self.store.get(bookmark_key(url, position)), operation="get_bookmark", path=None, step="read"
        )
        if raw is None or not is_valid_bookmark_record(raw):
            return None
        return Bookmark.from_record(raw)

    async def remove(self, url: str, position: int) -> None:
        await self._call(
            self.store.remove(bookmark_key(url, position)), operation="remove_bookmark", path=None, step="remove"
        )
        self.logger.info("[BOOKMARK] Supprimé position %s", position)

    async def remove_many(self, keys: Iterable[str]) -> int:
        """
        Suppression groupée par clés de stockage `bookmark:*`.
        """
        targets = list(dict.fromkeys(k for k in keys if k.startswith(BOOKMARK_KEY_PREFIX)))
        if targets:
            await self._call(self.store.remove(targets), operation="delete_bookmarks", path=None, step="remove_many")
            self.logger.info("[BOOKMARK] %d favoris supprimés", len(targets))
        return len(targets)

    async def is_bookmarked(self, url: str, position: int) -> bool:
        raw = await self._call(
            self.store.get(bookmark_key(url, position)), operation="is_bookmarked", path=None, step="read"
        )
        return raw is not None

    async def _scan(self, operation: str) -> dict[str, Any]:
        return await self._call(self.store.get_all(), operation=operation, path=None, step="scan")

    async def load_all_positions(self, url: str) -> set[int]:
        """
        Positions enregistrées pour une URL (scan complet, préfixe filtré côté client).
        """
        prefix = f"{BOOKMARK_KEY_PREFIX}{strip_protocol(url)}:"
        positions: set[int] = set()
        for key in await self._scan("load_positions"):
            if key.startswith(prefix):
                suffix = key[len(prefix) :]
                if suffix.isdigit():
                    positions.add(int(suffix))
        return positions

    async def update_bookmark(self, url: str, position: int, /, **updates: Any) -> Bookmark:
        """
        Fusionne `updates` dans le favori existant (url/position non modifiables).
        """
        forbidden = _IMMUTABLE_FIELDS & updates.keys()
        if forbidden:
            raise ValidationError(f"Champs non modifiables: {sorted(forbidden)}", ctx={"fields": sorted(forbidden)})
        unknown = updates.keys() - {f.name for f in fields(Bookmark)}
        if unknown:
            raise ValidationError(f"Champs inconnus: {sorted(unknown)}", ctx={"fields": sorted(unknown)})

        existing = await self.get(url, position)
        if existing is None:
            raise NotFoundError(f"Bookmark not found at position {position}", ctx={"url": url, "position": position})

        record = {**existing.to_record(), **updates}
        updated = Bookmark.from_record(record)
        await self.put(updated)
        self.logger.info("[BOOKMARK] Mis à jour position %s", position)
        return updated

    async def get_all_bookmarks(self) -> list[Bookmark]:
        """
        Tous les favoris valides, du plus récent au plus ancien.
        """
        everything = await self._scan("list_bookmarks")
        bookmarks = [
            Bookmark.from_record(raw)
            for key, raw in everything.items()
            if key.startswith(BOOKMARK_KEY_PREFIX) and is_valid_bookmark_record(raw)
        ]
        bookmarks.sort(key=lambda b: (-b.timestamp, b.key))
        self.logger.debug("[BOOKMARK] %d favoris chargés", len(bookmarks))
        return bookmarks

    async def repair_bookmarks(self) -> RepairStats:
        """
        Répare les enregistrements structurellement invalides, supprime les irréparables.
        """
        stats = RepairStats()
        everything = await self._scan("repair_bookmarks")
        for key, raw in everything.items():
            if not key.startswith(BOOKMARK_KEY_PREFIX) or is_valid_bookmark_record(raw):
                continue

            self.logger.warning("[BOOKMARK] Enregistrement invalide : %s", key)
            candidate = _repair_record(raw) if isinstance(raw, dict) else None
            if candidate is not None and is_valid_bookmark_record(candidate):
                await self._call(self.store.set({key: candidate}), operation="repair_bookmarks", path=None, step="put")
                stats.repaired += 1
                self.logger.info("[BOOKMARK] Réparé : %s", key)
            else:
                await self._call(self.store.remove(key), operation="repair_bookmarks", path=None, step="remove")
                stats.removed += 1
                self.logger.warning("[BOOKMARK] Irréparable, supprimé : %s", key)

        self.logger.info("[BOOKMARK] Réparation : %d réparés, %d supprimés", stats.repaired, stats.removed)
        return stats


def _repair_record(raw: dict[str, Any]) -> dict[str, Any] | None:
    url = raw.get("url") if isinstance(raw.get("url"), str) else ""
    if not url:
        return None
    position = raw.get("position")
    if not isinstance(position, int) or isinstance(position, bool):
        try:
            position = int(str(position))
        except ValueError:
            return None
    timestamp = raw.get("timestamp")
    repaired: dict[str, Any] = {
        "url": url,
        "url_without_protocol": raw.get("url_without_protocol") or strip_protocol(url),
        "position": position,
        "user_message": raw.get("user_message") if isinstance(raw.get("user_message"), str) else "",
        "timestamp": timestamp if isinstance(timestamp, int) and not isinstance(timestamp, bool) else now_ms(),
    }
    for optional in ("ai_response", "title", "notes", "folder_path"):
        if isinstance(raw.get(optional), str):
            repaired[optional] = raw[optional]
    if raw.get("platform") is not None:
        repaired["platform"] = raw["platform"]
    return repaired
