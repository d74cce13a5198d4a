import json
import sqlite3
from unittest.mock import MagicMock

import pytest

from sloppyview.config.engine_config import DbType, EngineConfig
from sloppyview.config.settings import Settings
from sloppyview.inference.bridge import InferenceBridge


STUDENTS = [
    (1, "Ada", 1, 3.9, "2024-01-15"),
    (2, "Linus", 0, 3.1, "2023-09-01"),
    (3, "Grace", 1, None, "2022-02-28"),
]


@pytest.fixture
def students_db(tmp_path):
    """A SQLite file with one ``students`` table."""
    path = tmp_path / "school.db"
    conn = sqlite3.connect(str(path))
    conn.execute(
        "CREATE TABLE students ("
        " id INTEGER PRIMARY KEY,"
        " name TEXT NOT NULL,"
        " active BOOLEAN,"
        " gpa REAL,"
        " enrolled DATE)"
    )
    conn.executemany("INSERT INTO students VALUES (?, ?, ?, ?, ?)", STUDENTS)
    conn.commit()
    conn.close()
    return path


@pytest.fixture
def sqlite_config(students_db):
    return EngineConfig(
        db_type=DbType.SQLITE,
        connection_string=str(students_db),
        ai_cli_path="/opt/llama/llama-cli",
        ai_model_path="/opt/llama/model.gguf",
        sql_knowledge="school database",
    )


@pytest.fixture
def sqlite_payload(sqlite_config):
    return json.dumps(sqlite_config.to_dict())


@pytest.fixture
def fake_bridge():
    bridge = MagicMock(spec=InferenceBridge)
    bridge.run.return_value = "Sure! select * from students;"
    bridge.prime.return_value = "Ready."
    return bridge


@pytest.fixture
def quiet_settings():
    return Settings(log_file="", prime_on_configure=False)
