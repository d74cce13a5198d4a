"""Convert native driver rows into ordered, JSON-ready dicts.

Each backend has a fixed table from its native column type name to a
conversion rule. Rules only see non-NULL values: SQL NULL is always ``None``
and the key is kept. Type names missing from a table become ``None`` instead
of failing the row.

Decimal handling differs on purpose:
  - PostgreSQL ``NUMERIC`` is truncated to an integer (loses the fraction).
  - MySQL ``DECIMAL`` is rendered as a string and keeps full precision.

Date and time values use the driver's rendering, ``str()`` of the Python
value. Timezone offsets therefore read ``+00:00`` where the PostgreSQL server
itself prints ``+00``.
"""
from __future__ import annotations

import base64
import datetime as _dt
import json
import math
import uuid
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence

from sloppyview.config.engine_config import DbType
from sloppyview.db.utils import ColumnMeta
from sloppyview.exceptions.errors import SqlReadError

Rule = Callable[[Any], Any]
StructuredRow = Dict[str, Any]


def _b64(v: Any) -> str:
    return base64.b64encode(bytes(v)).decode("ascii")


def _integer(v: Any) -> int:
    if isinstance(v, bool):
        return int(v)
    if isinstance(v, int):
        return v
    if isinstance(v, Decimal):
        # int() truncates toward zero; NaN/Infinity raise
        return int(v)
    if isinstance(v, str):
        return int(v.strip())
    raise TypeError(f"expected an integer, got {type(v).__name__}")


def _float(v: Any) -> float:
    if isinstance(v, bool) or not isinstance(v, (int, float, Decimal)):
        raise TypeError(f"expected a number, got {type(v).__name__}")
    f = float(v)
    if not math.isfinite(f):
        raise ValueError(f"non-finite float value {v!r}")
    return f


def _string(v: Any) -> str:
    if isinstance(v, str):
        return v
    if isinstance(v, (bytes, bytearray, memoryview)):
        return _b64(v)
    if isinstance(v, uuid.UUID):
        return str(v)
    raise TypeError(f"expected text, got {type(v).__name__}")


def _boolean(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, int):
        # TINYINT(1) stores -128..127; any nonzero value is true
        return v != 0
    raise TypeError(f"expected a boolean, got {v!r}")


def _temporal(v: Any) -> str:
    if isinstance(v, str):
        return v
    if isinstance(v, (_dt.date, _dt.time, _dt.timedelta)):
        return str(v)
    raise TypeError(f"expected a date/time value, got {type(v).__name__}")


def _binary(v: Any) -> str:
    if isinstance(v, (bytes, bytearray, memoryview)):
        return _b64(v)
    if isinstance(v, str):
        return v
    raise TypeError(f"expected binary data, got {type(v).__name__}")


def _text_array(v: Any) -> List[str]:
    if not isinstance(v, (list, tuple)):
        raise TypeError(f"expected an array, got {type(v).__name__}")
    out: List[str] = []
    for item in v:
        if not isinstance(item, str):
            raise TypeError(f"expected text array elements, got {type(item).__name__}")
        out.append(item)
    return out


def _json_native(v: Any) -> Any:
    # driver already decoded the document
    return v


def _json_text(v: Any) -> Any:
    if isinstance(v, (bytes, bytearray)):
        v = v.decode("utf-8")
    if isinstance(v, str):
        return json.loads(v)
    return v


def _decimal_string(v: Any) -> str:
    if isinstance(v, bool) or not isinstance(v, (Decimal, int, float, str)):
        raise TypeError(f"expected a decimal, got {type(v).__name__}")
    return str(v)


POSTGRES_RULES: Dict[str, Rule] = {
    "INT2": _integer,
    "INT4": _integer,
    "INT8": _integer,
    "NUMERIC": _integer,
    "FLOAT4": _float,
    "FLOAT8": _float,
    "VARCHAR": _string,
    "TEXT": _string,
    "CHAR": _string,
    "BPCHAR": _string,
    "NAME": _string,
    "UUID": _string,
    "BOOL": _boolean,
    "DATE": _temporal,
    "TIME": _temporal,
    "TIMESTAMP": _temporal,
    "TIMESTAMPTZ": _temporal,
    "BYTEA": _binary,
    "JSON": _json_native,
    "JSONB": _json_native,
    "TEXT[]": _text_array,
    "VARCHAR[]": _text_array,
    "BPCHAR[]": _text_array,
}

MYSQL_RULES: Dict[str, Rule] = {
    "TINYINT": _integer,
    "SMALLINT": _integer,
    "MEDIUMINT": _integer,
    "INT": _integer,
    "BIGINT": _integer,
    "YEAR": _integer,
    "FLOAT": _float,
    "DOUBLE": _float,
    "DECIMAL": _decimal_string,
    "VARCHAR": _string,
    "CHAR": _string,
    "TEXT": _string,
    "ENUM": _string,
    "BOOLEAN": _boolean,
    "DATE": _temporal,
    "DATETIME": _temporal,
    "TIMESTAMP": _temporal,
    "TIME": _temporal,
    "BLOB": _binary,
    "JSON": _json_text,
}

# keyed by SQLite storage class, see sqlite_type_name()
SQLITE_RULES: Dict[str, Rule] = {
    "INTEGER": _integer,
    "REAL": _float,
    "TEXT": _string,
    "BOOLEAN": _boolean,
    "BLOB": _binary,
}

RULES: Dict[DbType, Dict[str, Rule]] = {
    DbType.POSTGRESQL: POSTGRES_RULES,
    DbType.MYSQL: MYSQL_RULES,
    DbType.SQLITE: SQLITE_RULES,
}


def sqlite_type_name(value: Any) -> str:
    if isinstance(value, bool):
        return "BOOLEAN"
    if isinstance(value, int):
        return "INTEGER"
    if isinstance(value, float):
        return "REAL"
    if isinstance(value, str):
        return "TEXT"
    if isinstance(value, (bytes, bytearray, memoryview)):
        return "BLOB"
    if value is None:
        return "NULL"
    return type(value).__name__.upper()


def convert_row(db_type: DbType, columns: Sequence[ColumnMeta], row: Sequence[Any]) -> StructuredRow:
    """Convert one native row; any unreadable column fails the whole row."""
    rules = RULES[db_type]
    out: StructuredRow = {}
    for col, value in zip(columns, row):
        if value is None:
            out[col.name] = None
            continue
        type_name: Optional[str] = col.type_name
        if db_type is DbType.SQLITE:
            type_name = sqlite_type_name(value)
        rule = rules.get(type_name or "")
        if rule is None:
            out[col.name] = None
            continue
        try:
            out[col.name] = rule(value)
        except (TypeError, ValueError, ArithmeticError) as e:
            raise SqlReadError(
                f"column {col.name!r} ({type_name}): {e}"
            ) from e
    return out


def convert_rows(db_type: DbType, columns: Sequence[ColumnMeta], rows: Sequence[Sequence[Any]]) -> List[StructuredRow]:
    return [convert_row(db_type, columns, r) for r in rows]
