# store/db_connection.py

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import pymysql
from pymysql.connections import Connection
from pymysql.cursors import DictCursor

from bookmarkops.models.exceptions import StorageError
from bookmarkops.utils.config import get_db_settings
from bookmarkops.utils.logger import LoggerProtocol, ensure_logger, with_child_logger


def build_db_config() -> dict[str, Any]:
    """
    Paramètres pymysql.connect à partir de la config centralisée (.env).
    """
    return {**get_db_settings(), "charset": "utf8mb4", "cursorclass": DictCursor}


@with_child_logger
def get_db_connection(
    db_config: dict[str, Any] | None = None,
    *,
    logger: LoggerProtocol | None = None,
) -> Connection:
    """
    Ouvre une connexion MySQL.
    """
    logger = ensure_logger(logger, __name__)
    cfg = db_config or build_db_config()
    try:
        return pymysql.connect(**cfg)
    except pymysql.MySQLError as exc:
        logger.error("[DB] Connexion impossible (%s:%s): %s", cfg.get("host"), cfg.get("port"), exc)
        raise StorageError("Erreur de connexion DB", operation="connect") from exc


@contextmanager
@with_child_logger
def db_conn(
    db_config: dict[str, Any] | None = None,
    *,
    autocommit: bool = False,
    logger: LoggerProtocol | None = None,
) -> Iterator[Connection]:
    """
    Ouvre une connexion, gère commit/rollback/close en 1 seul endroit.
    """
    logger = ensure_logger(logger, __name__)
    conn = get_db_connection(db_config, logger=logger)
    conn.autocommit(autocommit)
    try:
        yield conn
        if not autocommit:
            conn.commit()
    except Exception:  # pylint: disable=broad-except
        if not autocommit:
            try:
                conn.rollback()
            except pymysql.MySQLError:
                logger.warning("Rollback failed", exc_info=True)
        raise
    finally:
        try:
            conn.close()
        except pymysql.err.Error as exc:
            if "Already closed" not in str(exc):
                logger.warning("Close failed: %s", exc)
