from contextlib import contextmanager
import json

import pymysql
import pytest

from conftest import run

from bookmarkops.models.exceptions import StorageError
from bookmarkops.process_folders.folder_operations import FolderOperationsManager
from bookmarkops.store import mysql_store
from bookmarkops.store.factory import open_store
from bookmarkops.store.json_store import JsonFileStore
from bookmarkops.store.kv_store import KeyValueStore, MemoryStore
from bookmarkops.store.mysql_store import MySQLStore


class TestMemoryStore:
    def test_values_are_copied(self):
        store = MemoryStore()
        value = {"a": [1]}
        run(store.set({"k": value}))
        value["a"].append(2)
        assert run(store.get("k")) == {"a": [1]}

    def test_protocol(self):
        assert isinstance(MemoryStore(), KeyValueStore)

    def test_get_all_with_keys(self):
        store = MemoryStore({"a": 1, "b": 2})
        assert run(store.get_all(["a", "zz"])) == {"a": 1}
        run(store.remove(["a", "b", "missing"]))
        assert run(store.get_all()) == {}


class TestJsonFileStore:
    def test_round_trip(self, tmp_path):
        path = tmp_path / "nested" / "store.json"
        store = JsonFileStore(path)
        assert run(store.get("k")) is None

        run(store.set({"k": {"v": "é"}, "other": 1}))
        run(store.remove("other"))

        assert json.loads(path.read_text(encoding="utf-8")) == {"k": {"v": "é"}}
        assert run(JsonFileStore(path).get_all()) == {"k": {"v": "é"}}

    def test_corrupted_file(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(StorageError) as exc_info:
            run(JsonFileStore(path).get("k"))
        assert exc_info.value.ctx["operation"] == "load"

    def test_engine_on_json_backend(self, tmp_path):
        store = open_store("json", str(tmp_path / "s.json"))
        manager = FolderOperationsManager(store)
        assert run(manager.create_folder(None, "Work")).success
        assert run(manager.create_folder("Work", "AI")).success
        assert run(manager.rename_folder("Work", "Projects")).success

        reopened = FolderOperationsManager(JsonFileStore(tmp_path / "s.json"))
        assert [f.path for f in run(reopened.list_folders()).unwrap()] == ["Projects", "Projects/AI"]


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql, params=None):
        if self.conn.error is not None:
            raise self.conn.error
        self.conn.log.append(("execute", sql, params))

    def executemany(self, sql, params):
        self.conn.log.append(("executemany", sql, list(params)))

    def fetchall(self):
        return self.conn.rows


class FakeConn:
    def __init__(self):
        self.log = []
        self.rows = []
        self.error = None

    def cursor(self):
        return FakeCursor(self)


@pytest.fixture
def fake_conn(monkeypatch):
    conn = FakeConn()

    @contextmanager
    def fake_db_conn(db_config=None, *, autocommit=False, logger=None):
        yield conn

    monkeypatch.setattr(mysql_store, "db_conn", fake_db_conn)
    return conn


class TestMySQLStore:
    def test_rejects_bad_table_name(self):
        with pytest.raises(ValueError):
            MySQLStore("kv; DROP TABLE x")

    def test_set_is_one_upsert_batch(self, fake_conn):
        run(MySQLStore("kv").set({"a": {"x": 1}, "b": [1, 2]}))
        kind, sql, params = fake_conn.log[0]
        assert kind == "executemany"
        assert "ON DUPLICATE KEY UPDATE" in sql
        assert params == [("a", '{"x": 1}'), ("b", "[1, 2]")]

    def test_get_all_decodes_rows(self, fake_conn):
        fake_conn.rows = [{"k": "a", "v": '{"x": 1}'}]
        assert run(MySQLStore("kv").get_all(["a", "b"])) == {"a": {"x": 1}}
        _, sql, params = fake_conn.log[0]
        assert "IN (%s, %s)" in sql
        assert params == ("a", "b")

    def test_empty_key_list_skips_query(self, fake_conn):
        assert run(MySQLStore("kv").get_all([])) == {}
        run(MySQLStore("kv").remove([]))
        assert fake_conn.log == []

    def test_get_single_key(self, fake_conn):
        fake_conn.rows = [{"k": "folder_paths", "v": '["Work"]'}]
        assert run(MySQLStore("kv").get("folder_paths")) == ["Work"]

    def test_driver_error_becomes_storage_error(self, fake_conn):
        fake_conn.error = pymysql.err.OperationalError(2003, "down")
        with pytest.raises(StorageError) as exc_info:
            run(MySQLStore("kv").remove("a"))
        assert exc_info.value.ctx["operation"] == "remove"

    def test_key_column_is_case_sensitive(self, fake_conn):
        MySQLStore("kv").create_table()
        kind, sql, _ = fake_conn.log[0]
        assert kind == "execute"
        assert "k VARCHAR(768) CHARACTER SET utf8mb4 COLLATE utf8mb4_bin" in sql
        assert "PRIMARY KEY" in sql
