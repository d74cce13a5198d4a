from __future__ import annotations

from typing import Any, Dict, List, Tuple

import psycopg2

from sloppyview.db.utils import ColumnMeta, redact
from sloppyview.exceptions.errors import DbConnectionError, QueryError
from sloppyview.logging.logger import get_logger


log = get_logger("db.postgres")

BACKEND_NAME = "PostgreSQL"

# pg_type OIDs -> the type names used by the row converter
PG_TYPE_NAMES: Dict[int, str] = {
    16: "BOOL",
    17: "BYTEA",
    18: "CHAR",
    19: "NAME",
    20: "INT8",
    21: "INT2",
    23: "INT4",
    25: "TEXT",
    114: "JSON",
    700: "FLOAT4",
    701: "FLOAT8",
    1009: "TEXT[]",
    1014: "BPCHAR[]",
    1015: "VARCHAR[]",
    1042: "BPCHAR",
    1043: "VARCHAR",
    1082: "DATE",
    1083: "TIME",
    1114: "TIMESTAMP",
    1184: "TIMESTAMPTZ",
    1186: "INTERVAL",
    1700: "NUMERIC",
    2950: "UUID",
    3802: "JSONB",
}


def connect(connection_string: str) -> Any:
    try:
        conn = psycopg2.connect(connection_string)
    except psycopg2.Error as e:
        raise DbConnectionError(f"{BACKEND_NAME} connection error: {e}") from e
    conn.autocommit = True
    log.info("Connected", extra={"backend": BACKEND_NAME, "target": redact(connection_string)})
    return conn


def fetch(conn: Any, sql: str) -> Tuple[List[ColumnMeta], List[tuple]]:
    try:
        with conn.cursor() as cur:
            cur.execute(sql)
            if cur.description is None:
                return [], []
            columns = [
                ColumnMeta(name=d[0], type_name=PG_TYPE_NAMES.get(d[1], f"OID{d[1]}"))
                for d in cur.description
            ]
            return columns, cur.fetchall()
    except psycopg2.Error as e:
        raise QueryError(str(e).strip()) from e
