from __future__ import annotations

from dataclasses import dataclass, field
from types import ModuleType
from typing import Any, List, Tuple

from sloppyview.config.engine_config import DbType, EngineConfig
from sloppyview.db import mysql, postgres, sqlite
from sloppyview.db.utils import ColumnMeta
from sloppyview.exceptions.errors import QueryError
from sloppyview.logging.logger import get_logger

log = get_logger("db.session")


@dataclass
class Session:
    """One open backend connection, tagged with the backend that created it."""

    db_type: DbType
    conn: Any = field(repr=False)
    connection_string: str = field(default="", repr=False)
    closed: bool = False


def _backend(db_type: DbType) -> ModuleType:
    if db_type is DbType.POSTGRESQL:
        return postgres
    if db_type is DbType.MYSQL:
        return mysql
    if db_type is DbType.SQLITE:
        return sqlite
    raise QueryError(f"No such backend: {db_type!r}")


def open_session(config: EngineConfig) -> Session:
    """Connect to the backend named by ``config.db_type``.

    Raises DbConnectionError with the backend name and the driver message.
    There is no retry; callers reconfigure to try again.
    """
    conn = _backend(config.db_type).connect(config.connection_string)
    return Session(db_type=config.db_type, conn=conn, connection_string=config.connection_string)


def execute(session: Session, sql: str) -> Tuple[List[ColumnMeta], List[tuple]]:
    if session.closed:
        raise QueryError("Session is closed")
    log.info(
        "Executing SQL",
        extra={"db_type": session.db_type.value, "sql_head": (sql or "")[:300]},
    )
    return _backend(session.db_type).fetch(session.conn, sql)


def close_session(session: Session) -> None:
    if session.closed:
        return
    session.closed = True
    try:
        session.conn.close()
    except Exception:
        log.warning("Closing session failed", extra={"db_type": session.db_type.value}, exc_info=True)
    else:
        log.info("Session closed", extra={"db_type": session.db_type.value})
