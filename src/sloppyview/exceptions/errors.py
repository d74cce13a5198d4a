from __future__ import annotations

import json
from typing import Dict


class AppError(Exception):
    """Base exception for sloppyview.

    Every error carries a ``kind`` name so it can reach the caller as a
    ``{"err": kind, "msg": message}`` payload.
    """

    kind = "UnknownError"
    prefix = ""

    def __init__(self, msg: str = ""):
        super().__init__(msg)
        self.msg = msg

    def __str__(self) -> str:
        if self.prefix:
            return f"{self.prefix}: {self.msg}"
        return self.msg

    def to_payload(self) -> Dict[str, str]:
        return {"err": self.kind, "msg": self.msg}

    def to_json(self) -> str:
        return json.dumps(self.to_payload())


class ConfigError(AppError):
    kind = "ConfigError"
    prefix = "Failed to use config information"


class SqlReadError(AppError):
    kind = "SqlReadError"
    prefix = "Failed to read SQL data"


class FileIOError(AppError):
    kind = "IOError"
    prefix = "File IO error"


class EngineExecutionError(AppError):
    kind = "EngineExecutionError"
    prefix = "Failed to execute engine"


class QueryError(AppError):
    kind = "QueryError"
    prefix = "Failed to query database"


class ServerError(AppError):
    kind = "ServerError"
    prefix = "Failed to start server"


class DbConnectionError(AppError):
    kind = "ConnectionError"
    prefix = "Connection error"


class ExecutionError(AppError):
    kind = "ExecutionError"
    prefix = "Execution error"


class UnknownError(AppError):
    kind = "UnknownError"

    def __init__(self, msg: str = "An unknown error occurred."):
        super().__init__(msg)


ERROR_KINDS = {
    cls.kind: cls
    for cls in (
        ConfigError,
        SqlReadError,
        FileIOError,
        EngineExecutionError,
        QueryError,
        ServerError,
        DbConnectionError,
        ExecutionError,
        UnknownError,
    )
}
