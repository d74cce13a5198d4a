from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from sloppyview.config.engine_config import DbType
from sloppyview.db.session import Session, execute
from sloppyview.db.utils import database_name_from
from sloppyview.exceptions.errors import AppError, QueryError
from sloppyview.logging.logger import get_logger

log = get_logger("schema.introspection")

KNOWLEDGE_SEPARATOR = ". sql table and constrains information:"

_CATALOG_SQL = """
SELECT
    c.table_name,
    c.column_name,
    c.data_type,
    tc.constraint_type
FROM
    information_schema.columns c
LEFT JOIN
    information_schema.key_column_usage kcu
    ON c.table_name = kcu.table_name
    AND c.column_name = kcu.column_name
    AND c.table_schema = kcu.table_schema
LEFT JOIN
    information_schema.table_constraints tc
    ON kcu.constraint_name = tc.constraint_name
    AND kcu.table_schema = tc.table_schema
WHERE
    c.table_schema = '{schema}'
ORDER BY
    c.table_name,
    c.ordinal_position;
"""

POSTGRES_SCHEMA = "public"

SQLITE_TABLES_SQL = "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%';"
SQLITE_COLUMNS_SQL = "select name, type from pragma_table_info('{table}')"


@dataclass(frozen=True)
class SchemaFact:
    table_name: str
    column_name: str
    data_type: str
    constraint_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def catalog_query(schema: str) -> str:
    return _CATALOG_SQL.format(schema=schema)


def _text(v: Any) -> str:
    if v is None:
        return ""
    if isinstance(v, (bytes, bytearray)):
        return v.decode("utf-8", errors="replace")
    return str(v)


def _facts_from_catalog(session: Session, schema: str) -> List[SchemaFact]:
    _, rows = execute(session, catalog_query(schema))
    return [
        SchemaFact(
            table_name=_text(r[0]),
            column_name=_text(r[1]),
            data_type=_text(r[2]),
            constraint_type=_text(r[3]) if r[3] is not None else None,
        )
        for r in rows
    ]


def introspect_postgres(session: Session) -> List[SchemaFact]:
    return _facts_from_catalog(session, POSTGRES_SCHEMA)


def introspect_mysql(session: Session) -> List[SchemaFact]:
    # validated before any SQL is built; raises ConfigError
    db_name = database_name_from(session.connection_string)
    return _facts_from_catalog(session, db_name)


def introspect_sqlite(session: Session) -> List[SchemaFact]:
    """SQLite has no information_schema: list tables, then pragma each one.

    pragma_table_info does not report constraints inline, so
    ``constraint_type`` is always None.
    """
    _, tables = execute(session, SQLITE_TABLES_SQL)
    facts: List[SchemaFact] = []
    for (table,) in tables:
        table = _text(table)
        quoted = table.replace("'", "''")
        _, cols = execute(session, SQLITE_COLUMNS_SQL.format(table=quoted))
        for name, col_type in cols:
            facts.append(SchemaFact(table_name=table, column_name=_text(name), data_type=_text(col_type)))
    return facts


def introspect(session: Session) -> List[SchemaFact]:
    """Collect (table, column, type, constraint) facts for the session's backend."""
    try:
        if session.db_type is DbType.POSTGRESQL:
            facts = introspect_postgres(session)
        elif session.db_type is DbType.MYSQL:
            facts = introspect_mysql(session)
        elif session.db_type is DbType.SQLITE:
            facts = introspect_sqlite(session)
        else:
            raise QueryError(f"No such backend: {session.db_type!r}")
    except AppError:
        raise
    except Exception as e:
        raise QueryError(f"schema introspection failed: {e}") from e

    log.info(
        "Schema introspected",
        extra={
            "db_type": session.db_type.value,
            "tables": len({f.table_name for f in facts}),
            "columns": len(facts),
        },
    )
    return facts


def render_knowledge(seed: str, facts: List[SchemaFact]) -> str:
    """Append the facts to the seed text as one JSON array after the separator."""
    try:
        payload = json.dumps([f.to_dict() for f in facts])
    except (TypeError, ValueError) as e:
        raise QueryError(str(e)) from e
    return f"{seed or ''}{KNOWLEDGE_SEPARATOR}{payload}"
