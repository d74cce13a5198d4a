from __future__ import annotations

from typing import Any, List, Tuple
import sqlite3

from sloppyview.db.utils import ColumnMeta, sqlite_target
from sloppyview.exceptions.errors import DbConnectionError, QueryError
from sloppyview.logging.logger import get_logger


log = get_logger("db.sqlite")

BACKEND_NAME = "SQLite"

_TRUE = {b"true", b"t", b"yes", b"y", b"on"}


def _convert_boolean(raw: bytes) -> bool:
    raw = raw.strip()
    try:
        return int(raw) != 0
    except ValueError:
        return raw.lower() in _TRUE


def _keep_text(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


_CONVERTERS_REGISTERED = False


def _register_converters() -> None:
    """Declared-type converters used with PARSE_DECLTYPES.

    BOOLEAN columns come back as bool. DATE/TIMESTAMP columns keep the text
    SQLite stored instead of going through the deprecated stdlib converters.
    """
    global _CONVERTERS_REGISTERED
    if _CONVERTERS_REGISTERED:
        return
    sqlite3.register_converter("BOOLEAN", _convert_boolean)
    sqlite3.register_converter("DATE", _keep_text)
    sqlite3.register_converter("TIMESTAMP", _keep_text)
    _CONVERTERS_REGISTERED = True


def connect(connection_string: str) -> Any:
    _register_converters()
    try:
        database, uri = sqlite_target(connection_string)
        conn = sqlite3.connect(
            database,
            uri=uri,
            detect_types=sqlite3.PARSE_DECLTYPES,
            isolation_level=None,
            check_same_thread=False,
        )
    except (ValueError, sqlite3.Error) as e:
        raise DbConnectionError(f"{BACKEND_NAME} connection error: {e}") from e
    log.info("Connected", extra={"backend": BACKEND_NAME, "target": connection_string})
    return conn


def fetch(conn: Any, sql: str) -> Tuple[List[ColumnMeta], List[tuple]]:
    cur = conn.cursor()
    try:
        cur.execute(sql)
        if cur.description is None:
            return [], []
        columns = [ColumnMeta(name=d[0]) for d in cur.description]
        return columns, cur.fetchall()
    except sqlite3.Error as e:
        raise QueryError(str(e)) from e
    finally:
        cur.close()
