"""
Fixtures partagées : store mémoire, moteur de dossiers, helper asyncio.
"""

import asyncio
import os
import tempfile

# Logs des tests hors du dépôt ; doit précéder tout import de bookmarkops
os.environ.setdefault("LOG_FILE_PATH", tempfile.mkdtemp(prefix="bookmarkops-logs-"))
os.environ.setdefault("STORE_BACKEND", "json")

import pytest  # noqa: E402

from bookmarkops.process_folders.folder_operations import FolderOperationsManager  # noqa: E402
from bookmarkops.store.kv_store import MemoryStore  # noqa: E402


def run(coro):
    """Exécute une coroutine dans une boucle neuve."""
    return asyncio.run(coro)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def manager(store):
    return FolderOperationsManager(store)


@pytest.fixture
def bookmark_storage(manager):
    return manager.bookmarks


@pytest.fixture
def folder_storage(manager):
    return manager.folders


@pytest.fixture
def make_folders(manager):
    """Crée une liste de chemins (parents d'abord) et échoue au premier refus."""

    def _make(*paths):
        for path in paths:
            parent, _, name = path.rpartition("/")
            result = run(manager.create_folder(parent or None, name))
            assert result.success, result.error
        return paths

    return _make


@pytest.fixture
def save_bookmark(bookmark_storage):
    """Enregistre un favori directement (sans contrôle du dossier)."""

    def _save(position, folder_path=None, *, url="https://chat.example.com/c/1", message=None, **extra):
        return run(
            bookmark_storage.save(
                url,
                position,
                message or f"question {position}",
                folder_path=folder_path,
                **extra,
            )
        )

    return _save
