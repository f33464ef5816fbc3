import os
import time

import pytest

from bookmarkops.models.exceptions import ConflictError, ErrCode
from bookmarkops.models.result import OperationResult
from bookmarkops.utils import config
from bookmarkops.utils.log_rotation import rotate_logs
from bookmarkops.utils.logger import with_child_logger
from bookmarkops.utils.safe_runner import safe_main


def test_config_getters(monkeypatch):
    monkeypatch.setenv("BKO_INT", "12")
    monkeypatch.setenv("BKO_BAD", "x")
    monkeypatch.setenv("BKO_FLAG", "Yes")
    assert config.get_int("BKO_INT") == 12
    assert config.get_bool("BKO_FLAG")
    assert config.get_str("BKO_UNSET", "d") == "d"
    with pytest.raises(config.ConfigError):
        config.get_int("BKO_BAD")
    with pytest.raises(config.ConfigError):
        config.get_required("BKO_UNSET")
    with pytest.raises(config.ConfigError):
        config.get_choice("BKO_BAD", ("json", "mysql"), "json")


def test_db_settings_are_lazy(monkeypatch):
    for key in ("DB_HOST", "DB_USER", "DB_PASSWORD", "DB_NAME"):
        monkeypatch.delenv(key, raising=False)
    with pytest.raises(config.ConfigError):
        config.get_db_settings()


def test_rotate_logs_prunes_old_files(tmp_path):
    old = tmp_path / "old.log"
    fresh = tmp_path / "fresh.log"
    other = tmp_path / "notes.txt"
    for f in (old, fresh, other):
        f.write_text("x", encoding="utf-8")
    past = time.time() - 40 * 86400
    os.utime(old, (past, past))
    os.utime(other, (past, past))

    assert rotate_logs(str(tmp_path), keep_days=30) == 1
    assert not old.exists() and fresh.exists() and other.exists()


def test_with_child_logger_injects_logger():
    @with_child_logger
    def job(*, logger=None):
        return logger

    injected = job()
    assert injected is not None
    assert injected.name.endswith(".job")


def test_safe_main_exit_codes(capsys):
    @safe_main
    def ok():
        return None

    @safe_main
    def domain():
        raise ConflictError("busy", ctx={"path": "Work"})

    @safe_main
    def crash():
        raise RuntimeError("boom")

    assert ok() == 0
    assert domain() == 2
    assert crash() == 1
    assert "CONFLICT" in capsys.readouterr().err


def test_operation_result():
    ok = OperationResult.ok([1])
    assert ok.unwrap() == [1] and ok.code is None
    failed = OperationResult.fail(ConflictError("busy"))
    assert failed.code == ErrCode.CONFLICT
    assert failed.to_dict()["code"] == "CONFLICT"
    with pytest.raises(ConflictError):
        failed.unwrap()
