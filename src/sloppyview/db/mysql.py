from __future__ import annotations

from typing import Any, List, Sequence, Tuple

import pymysql
from pymysql.constants import FIELD_TYPE

from sloppyview.db.utils import ColumnMeta, parse_mysql_url, redact
from sloppyview.exceptions.errors import DbConnectionError, QueryError
from sloppyview.logging.logger import get_logger


log = get_logger("db.mysql")

BACKEND_NAME = "MySQL"

MYSQL_TYPE_NAMES = {
    FIELD_TYPE.TINY: "TINYINT",
    FIELD_TYPE.SHORT: "SMALLINT",
    FIELD_TYPE.INT24: "MEDIUMINT",
    FIELD_TYPE.LONG: "INT",
    FIELD_TYPE.LONGLONG: "BIGINT",
    FIELD_TYPE.YEAR: "YEAR",
    FIELD_TYPE.FLOAT: "FLOAT",
    FIELD_TYPE.DOUBLE: "DOUBLE",
    FIELD_TYPE.DECIMAL: "DECIMAL",
    FIELD_TYPE.NEWDECIMAL: "DECIMAL",
    FIELD_TYPE.VARCHAR: "VARCHAR",
    FIELD_TYPE.VAR_STRING: "VARCHAR",
    FIELD_TYPE.STRING: "CHAR",
    FIELD_TYPE.ENUM: "ENUM",
    FIELD_TYPE.SET: "SET",
    FIELD_TYPE.TINY_BLOB: "BLOB",
    FIELD_TYPE.MEDIUM_BLOB: "BLOB",
    FIELD_TYPE.LONG_BLOB: "BLOB",
    FIELD_TYPE.BLOB: "BLOB",
    FIELD_TYPE.JSON: "JSON",
    FIELD_TYPE.DATE: "DATE",
    FIELD_TYPE.NEWDATE: "DATE",
    FIELD_TYPE.DATETIME: "DATETIME",
    FIELD_TYPE.TIMESTAMP: "TIMESTAMP",
    FIELD_TYPE.TIME: "TIME",
    FIELD_TYPE.BIT: "BIT",
    FIELD_TYPE.GEOMETRY: "GEOMETRY",
}


def type_name(desc: Sequence[Any]) -> str:
    """Map one cursor.description entry to a MySQL type name.

    ``TINYINT(1)`` is how MySQL spells BOOLEAN, so a one-wide TINY column is
    reported as ``BOOLEAN``.
    """
    code = desc[1]
    if code == FIELD_TYPE.TINY and len(desc) > 3 and desc[3] == 1:
        return "BOOLEAN"
    return MYSQL_TYPE_NAMES.get(code, f"TYPE{code}")


def connect(connection_string: str) -> Any:
    try:
        kwargs = parse_mysql_url(connection_string)
    except ValueError as e:
        raise DbConnectionError(f"{BACKEND_NAME} connection error: {e}") from e
    try:
        conn = pymysql.connect(autocommit=True, charset="utf8mb4", **kwargs)
    except pymysql.MySQLError as e:
        raise DbConnectionError(f"{BACKEND_NAME} connection error: {e}") from e
    log.info("Connected", extra={"backend": BACKEND_NAME, "target": redact(connection_string)})
    return conn


def fetch(conn: Any, sql: str) -> Tuple[List[ColumnMeta], List[tuple]]:
    try:
        with conn.cursor() as cur:
            cur.execute(sql)
            if cur.description is None:
                return [], []
            columns = [ColumnMeta(name=d[0], type_name=type_name(d)) for d in cur.description]
            return columns, list(cur.fetchall())
    except pymysql.MySQLError as e:
        raise QueryError(str(e)) from e
