"""
Unit tests for the error taxonomy, the engine configuration payload and the
YAML/env settings layer.
"""

import json

import pytest

from sloppyview.config.engine_config import DbType, EngineConfig
from sloppyview.config.settings import Settings, load_settings
from sloppyview.exceptions.errors import (
    ERROR_KINDS,
    AppError,
    ConfigError,
    DbConnectionError,
    ExecutionError,
    FileIOError,
    QueryError,
    UnknownError,
)


class TestErrors:
    """Tests for error payload rendering."""

    def test_payload_uses_own_kind(self):
        assert DbConnectionError("refused").to_payload() == {"err": "ConnectionError", "msg": "refused"}
        assert ExecutionError("x").to_payload()["err"] == "ExecutionError"
        assert FileIOError("x").to_payload()["err"] == "IOError"

    def test_to_json(self):
        data = json.loads(QueryError("no such table: foo").to_json())
        assert data == {"err": "QueryError", "msg": "no such table: foo"}

    def test_str_has_prefix(self):
        assert str(ConfigError("bad")) == "Failed to use config information: bad"

    def test_unknown_default_message(self):
        assert UnknownError().msg == "An unknown error occurred."

    def test_all_kinds_are_app_errors(self):
        assert set(ERROR_KINDS) == {
            "ConfigError",
            "SqlReadError",
            "IOError",
            "EngineExecutionError",
            "QueryError",
            "ServerError",
            "ConnectionError",
            "ExecutionError",
            "UnknownError",
        }
        for cls in ERROR_KINDS.values():
            assert issubclass(cls, AppError)


def _payload(**overrides):
    data = {
        "db_type": "PostgreSQL",
        "connection_string": "postgres://u:p@localhost:5432/shop",
        "ai_cli_path": "/bin/llama-cli",
        "ai_model_path": "/models/phi3.gguf",
        "sql_knowledge": "",
    }
    data.update(overrides)
    return data


class TestEngineConfig:
    """Tests for the configuration payload."""

    def test_from_dict(self):
        cfg = EngineConfig.from_dict(_payload())
        assert cfg.db_type is DbType.POSTGRESQL
        assert cfg.ai_model_path == "/models/phi3.gguf"

    @pytest.mark.parametrize("raw", ["MySQL", "PostgreSQL", "SQLite"])
    def test_db_type_names(self, raw):
        assert EngineConfig.from_dict(_payload(db_type=raw)).db_type.value == raw

    def test_unknown_db_type(self):
        with pytest.raises(ConfigError):
            EngineConfig.from_dict(_payload(db_type="Oracle"))

    def test_db_type_is_case_sensitive(self):
        with pytest.raises(ConfigError):
            EngineConfig.from_dict(_payload(db_type="sqlite"))

    def test_missing_field(self):
        data = _payload()
        del data["ai_cli_path"]
        with pytest.raises(ConfigError) as exc:
            EngineConfig.from_dict(data)
        assert "ai_cli_path" in exc.value.msg

    def test_non_string_field(self):
        with pytest.raises(ConfigError):
            EngineConfig.from_dict(_payload(connection_string=42))

    def test_malformed_json(self):
        with pytest.raises(ConfigError):
            EngineConfig.from_json("{not json")

    def test_json_not_an_object(self):
        with pytest.raises(ConfigError):
            EngineConfig.from_json("[1, 2]")

    def test_to_dict_round_trips_db_type_name(self):
        cfg = EngineConfig.from_dict(_payload(db_type="MySQL"))
        assert cfg.to_dict()["db_type"] == "MySQL"


class TestSettings:
    """Tests for YAML settings with environment overrides."""

    @pytest.fixture(autouse=True)
    def _clean_env(self, monkeypatch):
        for key in ("APP_ENV", "LOG_LEVEL", "LOG_FILE", "INFERENCE_MAX_TOKENS", "PRIME_ON_CONFIGURE", "PRIME_MAX_TOKENS"):
            monkeypatch.delenv(key, raising=False)

    def _write(self, tmp_path, text):
        p = tmp_path / "settings.yaml"
        p.write_text(text, encoding="utf-8")
        return str(p)

    def test_yaml_values(self, tmp_path):
        path = self._write(
            tmp_path,
            "app:\n  log_level: DEBUG\n  log_file: out/x.log\n"
            "inference:\n  max_tokens: 256\n  prime_on_configure: false\n  prime_max_tokens: 16\n",
        )
        s = load_settings(path)
        assert s.log_level == "DEBUG"
        assert s.log_file == "out/x.log"
        assert s.inference_max_tokens == 256
        assert s.prime_on_configure is False
        assert s.prime_max_tokens == 16

    def test_defaults_for_empty_file(self, tmp_path):
        s = load_settings(self._write(tmp_path, ""))
        assert s.inference_max_tokens == Settings().inference_max_tokens
        assert s.prime_on_configure is True

    def test_env_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("INFERENCE_MAX_TOKENS", "64")
        monkeypatch.setenv("PRIME_ON_CONFIGURE", "no")
        s = load_settings(self._write(tmp_path, "inference:\n  max_tokens: 256\n"))
        assert s.inference_max_tokens == 64
        assert s.prime_on_configure is False

    def test_bad_int_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("PRIME_MAX_TOKENS", "lots")
        with pytest.raises(ConfigError):
            load_settings(self._write(tmp_path, ""))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_settings(str(tmp_path / "nope.yaml"))

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ConfigError):
            load_settings(self._write(tmp_path, "app: [unclosed\n"))
