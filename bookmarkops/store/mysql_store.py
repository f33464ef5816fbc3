"""
# store/mysql_store.py

Store clé-valeur adossé à une table MySQL/MariaDB `(k, v)`.

Chaque appel ouvre sa propre connexion/transaction : un `set` multi-clés est
atomique côté DB, mais rien n'est garanti entre deux appels (même modèle que
le store navigateur d'origine). Les appels pymysql bloquants tournent dans un
thread via asyncio.to_thread.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
import json
import re
from typing import Any

import pymysql

from bookmarkops.models.exceptions import StorageError
from bookmarkops.store.db_connection import db_conn
from bookmarkops.store.kv_store import as_key_list
from bookmarkops.utils.config import DB_TABLE
from bookmarkops.utils.logger import LoggerProtocol, ensure_logger

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,63}$")


class MySQLStore:
    def __init__(
        self,
        table: str = DB_TABLE,
        db_config: dict[str, Any] | None = None,
        *,
        logger: LoggerProtocol | None = None,
    ) -> None:
        if not _IDENTIFIER.match(table):
            raise ValueError(f"Nom de table invalide: {table!r}")
        self.table = table
        self.db_config = db_config
        self.logger = ensure_logger(logger, __name__)

    # --- sync (thread) ---------------------------------------------------------

    def _run(self, operation: str, sql: str, params: Any = None, *, many: bool = False) -> list[dict[str, Any]]:
        try:
            with db_conn(self.db_config, logger=self.logger) as conn:
                with conn.cursor() as cur:
                    if many:
                        cur.executemany(sql, params)
                        return []
                    cur.execute(sql, params)
                    return list(cur.fetchall() or [])
        except pymysql.MySQLError as exc:
            self.logger.error("[DB] %s KO: %s", operation, exc)
            raise StorageError(f"Erreur requête DB: {exc}", operation=operation) from exc

    def create_table(self) -> None:
        # clés sensibles à la casse : "folder:Work" et "folder:work" sont deux lignes
        self._run(
            "create_table",
            f"CREATE TABLE IF NOT EXISTS `{self.table}` ("
            " k VARCHAR(768) CHARACTER SET utf8mb4 COLLATE utf8mb4_bin NOT NULL PRIMARY KEY,"
            " v LONGTEXT NOT NULL"
            ") CHARACTER SET utf8mb4",
        )

    def _select(self, keys: list[str] | None) -> dict[str, Any]:
        if keys is None:
            rows = self._run("get_all", f"SELECT k, v FROM `{self.table}`")
        elif not keys:
            return {}
        else:
            placeholders = ", ".join(["%s"] * len(keys))
            rows = self._run("get_all", f"SELECT k, v FROM `{self.table}` WHERE k IN ({placeholders})", tuple(keys))
        return {str(row["k"]): json.loads(row["v"]) for row in rows}

    def _upsert(self, items: dict[str, Any]) -> None:
        if not items:
            return
        params = [(k, json.dumps(v, ensure_ascii=False)) for k, v in items.items()]
        self._run(
            "set",
            f"INSERT INTO `{self.table}` (k, v) VALUES (%s, %s) ON DUPLICATE KEY UPDATE v = VALUES(v)",
            params,
            many=True,
        )

    def _delete(self, keys: list[str]) -> None:
        if not keys:
            return
        placeholders = ", ".join(["%s"] * len(keys))
        self._run("remove", f"DELETE FROM `{self.table}` WHERE k IN ({placeholders})", tuple(keys))

    # --- async API -------------------------------------------------------------

    async def get(self, key: str) -> Any | None:
        found = await asyncio.to_thread(self._select, [key])
        return found.get(key)

    async def set(self, items: Mapping[str, Any]) -> None:
        await asyncio.to_thread(self._upsert, dict(items))

    async def remove(self, keys: str | Iterable[str]) -> None:
        await asyncio.to_thread(self._delete, as_key_list(keys))

    async def get_all(self, keys: Iterable[str] | None = None) -> dict[str, Any]:
        return await asyncio.to_thread(self._select, None if keys is None else list(keys))
