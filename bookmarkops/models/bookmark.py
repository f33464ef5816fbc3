"""
# models/bookmark.py
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, replace
from enum import StrEnum
import re
from typing import Any

from bookmarkops.models.types import JsonDict

BOOKMARK_KEY_PREFIX = "bookmark:"
TITLE_MAX_LENGTH = 50

_PROTOCOL = re.compile(r"^https?://")


class Platform(StrEnum):
    CHATGPT = "ChatGPT"
    GEMINI = "Gemini"
    CLAUDE = "Claude"
    DEEPSEEK = "Deepseek"


def strip_protocol(url: str) -> str:
    return _PROTOCOL.sub("", url or "")


def bookmark_identity_key(url: str, position: int) -> str:
    """
    Identité "<url sans protocole>:<position>" (clé de sélection dans l'arbre).
    """
    return f"{strip_protocol(url)}:{position}"


def bookmark_key(url: str, position: int) -> str:
    """
    Clé de stockage : indépendante du dossier, un rename ne la touche jamais.
    """
    return f"{BOOKMARK_KEY_PREFIX}{bookmark_identity_key(url, position)}"


def parse_identity_key(key: str) -> tuple[str, int] | None:
    """
    "<url sans protocole>:<position>" -> (url, position), découpé au dernier ":".

    None si la clé est mal formée.
    """
    url, sep, position = key.rpartition(":")
    if not sep or not url or not position.isdigit():
        return None
    return url, int(position)


def default_title(user_message: str) -> str:
    if len(user_message) > TITLE_MAX_LENGTH:
        return user_message[:TITLE_MAX_LENGTH] + "..."
    return user_message


@dataclass(frozen=True, slots=True, kw_only=True)
class Bookmark:
    """
    Enregistrement feuille. Opaque pour le noyau, hormis `folder_path`.
    """

    url: str
    url_without_protocol: str
    position: int
    user_message: str
    timestamp: int
    title: str
    folder_path: str | None = None
    ai_response: str | None = None
    notes: str | None = None
    platform: str | None = None

    @property
    def key(self) -> str:
        return f"{BOOKMARK_KEY_PREFIX}{self.identity_key}"

    @property
    def identity_key(self) -> str:
        return f"{self.url_without_protocol or strip_protocol(self.url)}:{self.position}"

    def with_folder(self, folder_path: str | None) -> Bookmark:
        return replace(self, folder_path=folder_path)

    def matches(self, lowered_query: str) -> bool:
        """
        Recherche plein texte (titre, message, réponse), requête déjà en minuscules.
        """
        haystacks = (self.title, self.user_message, self.ai_response or "")
        return any(lowered_query in h.lower() for h in haystacks)

    def to_record(self) -> JsonDict:
        record: JsonDict = {
            "url": self.url,
            "url_without_protocol": self.url_without_protocol,
            "position": self.position,
            "user_message": self.user_message,
            "timestamp": self.timestamp,
            "title": self.title,
            "folder_path": self.folder_path,
        }
        for optional in ("ai_response", "notes", "platform"):
            value = getattr(self, optional)
            if value is not None:
                record[optional] = value
        return record

    @classmethod
    def from_record(cls, row: Mapping[str, Any]) -> Bookmark:
        user_message = str(row.get("user_message") or "")
        return cls(
            url=str(row["url"]),
            url_without_protocol=str(row.get("url_without_protocol") or strip_protocol(str(row["url"]))),
            position=int(row["position"]),
            user_message=user_message,
            timestamp=int(row["timestamp"]),
            title=str(row.get("title") or default_title(user_message)),
            folder_path=row.get("folder_path") or None,
            ai_response=row.get("ai_response"),
            notes=row.get("notes"),
            platform=row.get("platform"),
        )


def is_valid_bookmark_record(row: Any) -> bool:
    """
    Contrôle structurel d'une valeur brute `bookmark:*`.
    """
    if not isinstance(row, Mapping):
        return False
    checks = (
        isinstance(row.get("url"), str),
        isinstance(row.get("url_without_protocol"), str),
        isinstance(row.get("position"), int) and not isinstance(row.get("position"), bool),
        isinstance(row.get("user_message"), str),
        isinstance(row.get("timestamp"), int),
    )
    if not all(checks):
        return False
    for optional in ("ai_response", "title", "notes", "folder_path"):
        if row.get(optional) is not None and not isinstance(row.get(optional), str):
            return False
    platform = row.get("platform")
    return platform is None or platform in {p.value for p in Platform}
