from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict

from sloppyview.exceptions.errors import ConfigError


class DbType(str, Enum):
    MYSQL = "MySQL"
    POSTGRESQL = "PostgreSQL"
    SQLITE = "SQLite"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, raw: Any) -> "DbType":
        if isinstance(raw, cls):
            return raw
        for member in cls:
            if member.value == raw:
                return member
        allowed = ", ".join(m.value for m in cls)
        raise ConfigError(f"unknown db_type {raw!r} (expected one of: {allowed})")


_REQUIRED = ("db_type", "connection_string", "ai_cli_path", "ai_model_path", "sql_knowledge")


@dataclass
class EngineConfig:
    """Connection + inference configuration supplied by the hosting shell.

    ``sql_knowledge`` starts as caller-provided seed text and is extended with
    the introspected schema when the engine is configured.
    """

    db_type: DbType
    connection_string: str
    ai_cli_path: str
    ai_model_path: str
    sql_knowledge: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        if not isinstance(data, dict):
            raise ConfigError(f"configuration must be an object, got {type(data).__name__}")

        missing = [k for k in _REQUIRED if k not in data]
        if missing:
            raise ConfigError(f"missing field(s): {', '.join(missing)}")

        for key in _REQUIRED[1:]:
            if not isinstance(data[key], str):
                raise ConfigError(f"{key} must be a string")

        return cls(
            db_type=DbType.parse(data["db_type"]),
            connection_string=data["connection_string"],
            ai_cli_path=data["ai_cli_path"],
            ai_model_path=data["ai_model_path"],
            sql_knowledge=data["sql_knowledge"],
        )

    @classmethod
    def from_json(cls, raw: str) -> "EngineConfig":
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise ConfigError(str(e)) from e
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        out = asdict(self)
        out["db_type"] = self.db_type.value
        return out
