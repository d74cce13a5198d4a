"""Payload-in / payload-out command surface for a hosting shell.

Each command takes plain values (JSON text, strings), drives the engine and
returns a JSON string. Failures surface as ``AppError``; ``dispatch`` turns
them into the ``{"err": kind, "msg": ...}`` payload instead.
"""
from __future__ import annotations

import json
from typing import Any, Callable, Dict

from sloppyview.agents.engine import Engine, QueryResponse
from sloppyview.config.engine_config import EngineConfig
from sloppyview.exceptions.errors import AppError, UnknownError
from sloppyview.logging.logger import get_logger

log = get_logger("service.commands")

SUCCESS = json.dumps({"msg": "success"})


def connect_config(engine: Engine, data: str) -> str:
    engine.configure(EngineConfig.from_json(data))
    return SUCCESS


def ask(engine: Engine, question: str) -> str:
    return engine.ask(question).to_json()


def ask_for_sql(engine: Engine, question: str) -> str:
    sql = engine.ask_for_sql(question)
    return QueryResponse(sql=sql, question=question, data=None).to_json()


def query(engine: Engine, sql: str) -> str:
    data = engine.run_query(sql)
    return QueryResponse(sql=sql, question="", data=data).to_json()


COMMANDS: Dict[str, Callable[..., str]] = {
    "connect_config": connect_config,
    "ask": ask,
    "ask_for_sql": ask_for_sql,
    "query": query,
}


def dispatch(engine: Engine, command: str, **kwargs: Any) -> str:
    """Run a named command; never raises, returns the error payload instead."""
    fn = COMMANDS.get(command)
    if fn is None:
        err: AppError = UnknownError(f"unknown command: {command}")
        log.error("Unknown command", extra={"command": command})
        return err.to_json()
    try:
        return fn(engine, **kwargs)
    except AppError as e:
        log.error("Command failed", extra={"command": command, "err": e.kind, "error": e.msg})
        return e.to_json()
    except Exception as e:
        log.exception("Unexpected command failure", extra={"command": command})
        return UnknownError(str(e) or UnknownError().msg).to_json()
