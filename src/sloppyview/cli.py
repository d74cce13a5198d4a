from __future__ import annotations

"""
sloppyview command line
-----------------------

Configure the engine from a JSON payload file, then run exactly one of:
  --ask       natural-language question -> SQL + rows
  --sql-only  natural-language question -> SQL
  --query     raw SQL -> rows

Usage (from repo root):
    sloppyview --config conn.json --ask "how many students are there?"
    sloppyview --config conn.json --knowledge-dir sql/ --sql-only "list all courses"
    sloppyview --config conn.json --query "select * from students;"

The payload file holds {db_type, connection_string, ai_cli_path, ai_model_path,
sql_knowledge}. With --knowledge-dir the files under that directory replace
sql_knowledge as seed text.
"""

import argparse
import json
from pathlib import Path
from typing import List, Optional

from sloppyview.agents.engine import Engine
from sloppyview.config.settings import Settings, load_settings
from sloppyview.exceptions.errors import AppError, FileIOError
from sloppyview.ingestion.reader import read_sql_files
from sloppyview.logging.logger import get_logger, init_logging
from sloppyview.service import commands

log = get_logger("cli")


def _settings(path: Optional[str]) -> Settings:
    if path or Path("config").is_dir():
        return load_settings(path)
    return Settings()


def _payload(config_path: str, knowledge_dir: Optional[str]) -> str:
    try:
        raw = Path(config_path).read_text(encoding="utf-8")
    except OSError as e:
        raise FileIOError(f"{config_path}: {e}") from e
    if not knowledge_dir:
        return raw
    try:
        data = json.loads(raw)
    except ValueError:
        # let connect_config report the malformed payload
        return raw
    if isinstance(data, dict):
        data["sql_knowledge"] = read_sql_files(knowledge_dir)
    return json.dumps(data)


def run(args: argparse.Namespace, engine: Engine) -> str:
    commands.connect_config(engine, _payload(args.config, args.knowledge_dir))
    if args.ask is not None:
        return commands.ask(engine, args.ask)
    if args.sql_only is not None:
        return commands.ask_for_sql(engine, args.sql_only)
    return commands.query(engine, args.query)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Ask a SQL database questions in natural language.")
    parser.add_argument("--config", required=True, help="Path to the JSON connection/inference payload.")
    parser.add_argument("--knowledge-dir", default=None, help="Directory of SQL/text files used as seed knowledge.")
    parser.add_argument("--settings", default=None, help="Settings YAML (defaults to config/<APP_ENV>.yaml).")
    action = parser.add_mutually_exclusive_group(required=True)
    action.add_argument("--ask", default=None, help="Question to answer with SQL and rows.")
    action.add_argument("--sql-only", dest="sql_only", default=None, help="Question to answer with SQL only.")
    action.add_argument("--query", default=None, help="SQL to run as-is.")
    args = parser.parse_args(argv)

    try:
        settings = _settings(args.settings)
    except AppError as e:
        print(e.to_json())
        return 1
    init_logging(settings.log_level, settings.log_file)

    engine = Engine(settings)
    try:
        out = run(args, engine)
    except AppError as e:
        log.error("Command failed", extra={"err": e.kind, "error": e.msg})
        print(e.to_json())
        return 1
    finally:
        engine.close()

    print(out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
