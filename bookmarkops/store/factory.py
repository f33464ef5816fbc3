"""
# store/factory.py
"""

from __future__ import annotations

from bookmarkops.store.json_store import JsonFileStore
from bookmarkops.store.kv_store import KeyValueStore
from bookmarkops.utils.config import STORE_BACKEND, STORE_PATH
from bookmarkops.utils.logger import LoggerProtocol, ensure_logger, with_child_logger


@with_child_logger
def open_store(
    backend: str = STORE_BACKEND,
    path: str = STORE_PATH,
    *,
    logger: LoggerProtocol | None = None,
) -> KeyValueStore:
    """
    Instancie le backend configuré (json | mysql).
    """
    logger = ensure_logger(logger, __name__)
    if backend == "mysql":
        # import tardif : pymysql n'est chargé que si le backend est utilisé
        from bookmarkops.store.mysql_store import MySQLStore

        store = MySQLStore(logger=logger)
        store.create_table()
        logger.debug("[STORE] Backend MySQL (table=%s)", store.table)
        return store
    logger.debug("[STORE] Backend JSON (%s)", path)
    return JsonFileStore(path)
