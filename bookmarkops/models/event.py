"""
# models/event.py
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Literal, NotRequired, TypedDict

FolderEventType = Literal["create", "rename", "move", "delete"]


class FolderEvent(TypedDict, total=True):
    """
    Notification émise après une opération de dossier réussie.

    `new_path` n'est présent que pour rename / move.
    """

    type: FolderEventType
    path: str
    timestamp: int
    new_path: NotRequired[str]


# synchrone ou coroutine (attendue par l'émetteur)
FolderEventListener = Callable[[FolderEvent], Awaitable[None] | None]
