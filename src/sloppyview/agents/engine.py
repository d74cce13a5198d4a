from __future__ import annotations
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, List, Optional
import json
import threading
import time

from sloppyview.config.engine_config import EngineConfig
from sloppyview.config.settings import Settings
from sloppyview.db.row_parser import StructuredRow, convert_rows
from sloppyview.db.session import Session, close_session, execute, open_session
from sloppyview.exceptions.errors import AppError, ConfigError, ExecutionError
from sloppyview.inference.bridge import InferenceBridge
from sloppyview.inference.extractor import extract_sql
from sloppyview.inference.prompts import priming_prompt, question_prompt
from sloppyview.logging.logger import get_logger
from sloppyview.schema.introspection import introspect, render_knowledge


log = get_logger("agents.engine")

NOT_CONFIGURED = "engine is not configured; call configure() first"


@dataclass(frozen=True)
class QueryResponse:
    sql: str
    question: str
    data: Optional[List[StructuredRow]] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self) -> str:
        try:
            return json.dumps(self.to_dict())
        except (TypeError, ValueError) as e:
            raise ExecutionError(str(e)) from e


class Engine:
    """Process-wide query engine: one config, one session, one lock.

    Every public method holds the lock for its full duration, so a question
    never observes a half-applied ``configure``.
    """

    def __init__(self, settings: Optional[Settings] = None, bridge: Optional[InferenceBridge] = None):
        self.settings = settings or Settings()
        self.bridge = bridge or InferenceBridge(
            max_tokens=self.settings.inference_max_tokens,
            prime_max_tokens=self.settings.prime_max_tokens,
        )
        self.config: Optional[EngineConfig] = None
        self.session: Optional[Session] = None
        self._lock = threading.Lock()

    @property
    def configured(self) -> bool:
        return self.config is not None and self.session is not None

    def configure(self, config: EngineConfig) -> None:
        """Connect, introspect and (optionally) prime the model.

        The previous session is closed first, even when the new connection
        then fails; the engine is left unconfigured in that case.
        """
        with self._lock:
            self._drop_session()

            session = open_session(config)
            try:
                facts = introspect(session)
                # knowledge restarts from the caller's seed on every configure
                knowledge = render_knowledge(config.sql_knowledge, facts)
            except AppError:
                close_session(session)
                raise

            config = replace(config, sql_knowledge=knowledge)
            self.config = config
            self.session = session
            log.info(
                "Engine configured",
                extra={
                    "db_type": config.db_type.value,
                    "facts": len(facts),
                    "knowledge_chars": len(config.sql_knowledge),
                },
            )

            if self.settings.prime_on_configure:
                self._prime(config)

    def _prime(self, config: EngineConfig) -> None:
        try:
            self.bridge.prime(config.ai_cli_path, config.ai_model_path, priming_prompt(config.db_type))
        except AppError as e:
            log.warning("Priming failed; continuing", extra={"error": str(e)})

    def _drop_session(self) -> None:
        if self.session is not None:
            close_session(self.session)
        self.session = None
        self.config = None

    def _require(self) -> EngineConfig:
        if not self.configured:
            raise ConfigError(NOT_CONFIGURED)
        return self.config

    def _ask_for_sql(self, question: str) -> str:
        config = self._require()
        prompt = question_prompt(config.sql_knowledge, config.db_type, question)
        t0 = time.time()
        raw = self.bridge.run(config.ai_cli_path, config.ai_model_path, prompt)
        sql = extract_sql(raw)
        log.info(
            "SQL generated",
            extra={"question": question, "sql": sql, "elapsed_s": round(time.time() - t0, 3)},
        )
        return sql

    def _run_query(self, sql: str) -> List[StructuredRow]:
        config = self._require()
        columns, rows = execute(self.session, sql)
        data = convert_rows(config.db_type, columns, rows)
        log.info("Query executed", extra={"rows": len(data), "columns": len(columns)})
        return data

    def ask_for_sql(self, question: str) -> str:
        with self._lock:
            return self._ask_for_sql(question)

    def run_query(self, sql: str) -> List[StructuredRow]:
        with self._lock:
            return self._run_query(sql)

    def ask(self, question: str) -> QueryResponse:
        with self._lock:
            sql = self._ask_for_sql(question)
            data = self._run_query(sql)
            return QueryResponse(sql=sql, question=question, data=data)

    def close(self) -> None:
        with self._lock:
            self._drop_session()
