import pytest

from conftest import run

from bookmarkops.models.exceptions import ConflictError, NotFoundError, PathValidationError, StorageError
from bookmarkops.models.folder_index import FOLDER_INDEX_KEY
from bookmarkops.storage.folder_storage import FolderStorage
from bookmarkops.store.kv_store import MemoryStore


class FailingStore(MemoryStore):
    """Store qui échoue sur l'opération choisie."""

    def __init__(self, fail_on):
        super().__init__()
        self.fail_on = fail_on

    async def set(self, items):
        if self.fail_on == "set":
            raise OSError("disk full")
        await super().set(items)

    async def remove(self, keys):
        if self.fail_on == "remove":
            raise OSError("io error")
        await super().remove(keys)


class RecordingStore(MemoryStore):
    def __init__(self):
        super().__init__()
        self.calls = []

    async def set(self, items):
        self.calls.append(("set", sorted(items)))
        await super().set(items)

    async def remove(self, keys):
        self.calls.append(("remove", keys))
        await super().remove(keys)

    async def get_all(self, keys=None):
        self.calls.append(("get_all", None if keys is None else list(keys)))
        return await super().get_all(keys)


def test_create_writes_record_then_index():
    store = RecordingStore()
    storage = FolderStorage(store)
    folder = run(storage.create("Work"))

    assert folder.path == "Work" and folder.depth == 1 and folder.name == "Work"
    writes = [c for c in store.calls if c[0] == "set"]
    assert writes == [("set", ["folder:Work"]), ("set", [FOLDER_INDEX_KEY])]
    assert store.snapshot()[FOLDER_INDEX_KEY] == ["Work"]


def test_create_nested(folder_storage):
    run(folder_storage.create("Work"))
    child = run(folder_storage.create("Work/AI"))
    assert child.depth == 2
    assert [f.path for f in run(folder_storage.get_all())] == ["Work", "Work/AI"]


def test_create_rejects_existing_path(folder_storage):
    run(folder_storage.create("Work"))
    with pytest.raises(ConflictError):
        run(folder_storage.create("Work"))


def test_create_rejects_case_insensitive_sibling(folder_storage):
    run(folder_storage.create("Work"))
    with pytest.raises(ConflictError):
        run(folder_storage.create("work"))


def test_create_requires_parent(folder_storage):
    with pytest.raises(NotFoundError):
        run(folder_storage.create("Missing/Child"))


def test_create_validates_before_any_write():
    store = RecordingStore()
    with pytest.raises(PathValidationError):
        run(FolderStorage(store).create("a/b/c/d/e"))
    assert store.calls == []


def test_get_all_uses_one_batched_read():
    store = RecordingStore()
    storage = FolderStorage(store)
    for path in ("B", "A", "A/x"):
        run(storage.create(path))
    store.calls.clear()

    folders = run(storage.get_all())

    assert [f.path for f in folders] == ["A", "A/x", "B"]
    reads = [c for c in store.calls if c[0] == "get_all"]
    assert len(reads) == 1
    assert reads[0][1] is not None


def test_get_all_skips_dangling_index_entries(store, folder_storage):
    run(folder_storage.create("Work"))
    run(store.set({FOLDER_INDEX_KEY: ["Work", "Ghost"]}))
    assert [f.path for f in run(folder_storage.get_all())] == ["Work"]


def test_get_returns_none_for_missing_or_corrupted(store, folder_storage):
    assert run(folder_storage.get("Nope")) is None
    run(store.set({"folder:Bad": {"name": "Bad"}}))
    assert run(folder_storage.get("Bad")) is None


def test_delete_removes_index_entry_before_record():
    store = RecordingStore()
    storage = FolderStorage(store)
    run(storage.create("Work"))
    store.calls.clear()

    run(storage.delete("Work"))

    mutations = [c for c in store.calls if c[0] in ("set", "remove")]
    assert mutations == [("set", [FOLDER_INDEX_KEY]), ("remove", "folder:Work")]
    assert run(storage.get_all()) == []


def test_delete_missing_raises(folder_storage):
    with pytest.raises(NotFoundError):
        run(folder_storage.delete("Nope"))


def test_bulk_delete(folder_storage):
    for path in ("A", "B", "C"):
        run(folder_storage.create(path))
    assert run(folder_storage.bulk_delete(["A", "C"])) == 2
    assert [f.path for f in run(folder_storage.get_all())] == ["B"]
    assert run(folder_storage.bulk_delete([])) == 0


def test_store_failure_surfaces_as_storage_error():
    storage = FolderStorage(FailingStore("set"))
    with pytest.raises(StorageError) as exc_info:
        run(storage.create("Work"))
    assert exc_info.value.ctx["operation"] == "create"
    assert exc_info.value.ctx["step"] == "write_record"
    assert exc_info.value.ctx["path"] == "Work"


def test_apply_batch_runs_hook_between_puts_and_removes():
    store = RecordingStore()
    storage = FolderStorage(store)
    order = []

    async def hook():
        order.append(len(store.calls))

    run(storage.apply_batch({"k1": 1, "k2": 2}, ["old"], operation="rename", path="x", before_removes=hook))

    assert store.calls == [("set", ["k1", "k2"]), ("remove", ["old"])]
    assert order == [1]


def test_scan_records_reports_corrupted_keys(store, folder_storage):
    run(folder_storage.create("Work"))
    run(store.set({"folder:Broken": "not a dict"}))
    records, corrupted = run(folder_storage.scan_records())
    assert list(records) == ["Work"]
    assert corrupted == ["folder:Broken"]
