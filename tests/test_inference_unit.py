"""
Unit tests for prompt rendering, SQL extraction and the subprocess bridge.

Bridge tests use small POSIX shell scripts in place of llama-cli.
"""

import stat
import sys
import time

import pytest

from sloppyview.config.engine_config import DbType
from sloppyview.exceptions.errors import EngineExecutionError, ExecutionError
from sloppyview.inference.bridge import InferenceBridge
from sloppyview.inference.extractor import EXTRACT_FAILED, extract_sql
from sloppyview.inference.prompts import priming_prompt, question_prompt


posix_only = pytest.mark.skipif(sys.platform.startswith("win"), reason="needs a POSIX shell")


def make_cli(tmp_path, body, name="llama-cli"):
    path = tmp_path / name
    path.write_text("#!/bin/sh\n" + body, encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return str(path)


class TestPrompts:
    """Tests for the chat-template prompts."""

    def test_question_prompt_verbatim(self):
        prompt = question_prompt("K", DbType.SQLITE, "how many students?")
        assert prompt == (
            "<|system|>You are a helpful assistant based on the following knowledge: K. "
            "You will generate proper SQL statements for SQLite.<|end|>"
            "<|user|>how many students?<|end|>.<|assistant|>"
        )

    def test_question_prompt_is_deterministic(self):
        a = question_prompt("schema", DbType.MYSQL, "q")
        b = question_prompt("schema", DbType.MYSQL, "q")
        assert a == b

    @pytest.mark.parametrize("db_type", list(DbType))
    def test_priming_prompt_names_dialect(self, db_type):
        prompt = priming_prompt(db_type)
        assert prompt.startswith("You are a helpful assistant. You will generate proper SQL statements")
        assert prompt.endswith("For running in " + db_type.value)


class TestExtractor:
    """Tests for pulling one SELECT statement out of model output."""

    def test_exact_substring(self):
        assert extract_sql("Sure! select * from students;") == "select * from students;"

    def test_shortest_span(self):
        text = "SELECT a FROM t; and then select b from u;"
        assert extract_sql(text) == "SELECT a FROM t;"

    def test_mixed_case(self):
        assert extract_sql("Here: SeLeCt name FROM x;") == "SeLeCt name FROM x;"

    def test_spans_newlines(self):
        assert extract_sql("select name\nfrom students\nwhere id = 1; done") == "select name\nfrom students\nwhere id = 1;"

    def test_needs_whole_word(self):
        assert extract_sql("preselected rows: select 1;") == "select 1;"

    @pytest.mark.parametrize(
        "text",
        ["", "I cannot answer that.", "select * from students", "UPDATE t SET a = 1;"],
    )
    def test_no_statement(self, text):
        with pytest.raises(ExecutionError) as exc:
            extract_sql(text)
        assert exc.value.msg == EXTRACT_FAILED


@posix_only
class TestInferenceBridge:
    """Tests for spawning the inference binary."""

    def test_command_flags(self):
        assert InferenceBridge.command("cli", "m.gguf", "hi", 128) == ["cli", "-m", "m.gguf", "-p", "hi", "-n", "128"]
        assert InferenceBridge.command("cli", "m.gguf", "hi", 8, conversation=True)[-1] == "-cnv"

    def test_run_joins_lines_with_space(self, tmp_path):
        cli = make_cli(tmp_path, 'echo "Sure, here you go:"\necho "select * from students;"\n')
        out = InferenceBridge().run(cli, "model.gguf", "prompt")
        assert out == "Sure, here you go: select * from students;"

    def test_run_passes_arguments(self, tmp_path):
        cli = make_cli(tmp_path, 'printf "%s\\n" "$@"\n')
        out = InferenceBridge(max_tokens=7).run(cli, "model.gguf", "how many rows")
        assert out == "-m model.gguf -p how many rows -n 7"

    def test_run_explicit_token_budget(self, tmp_path):
        cli = make_cli(tmp_path, 'printf "%s\\n" "$@"\n')
        out = InferenceBridge(max_tokens=7).run(cli, "m", "p", max_tokens=64)
        assert out.endswith("-n 64")

    def test_nonzero_exit_returns_output(self, tmp_path):
        cli = make_cli(tmp_path, 'echo "select 1;"\necho "model warning" >&2\nexit 3\n')
        assert InferenceBridge().run(cli, "m", "p") == "select 1;"

    def test_chatty_stderr_does_not_block(self, tmp_path):
        cli = make_cli(tmp_path, 'i=0\nwhile [ $i -lt 5000 ]; do echo "load tensor $i" >&2; i=$((i+1)); done\necho "select 2;"\n')
        assert InferenceBridge().run(cli, "m", "p") == "select 2;"

    def test_no_output(self, tmp_path):
        cli = make_cli(tmp_path, "exit 0\n")
        assert InferenceBridge().run(cli, "m", "p") == ""

    def test_missing_binary(self, tmp_path):
        with pytest.raises(EngineExecutionError):
            InferenceBridge().run(str(tmp_path / "nope"), "m", "p")

    def test_not_executable(self, tmp_path):
        path = tmp_path / "plain.txt"
        path.write_text("echo hi\n", encoding="utf-8")
        with pytest.raises(EngineExecutionError):
            InferenceBridge().run(str(path), "m", "p")

    def test_prime_reads_one_line_and_disposes(self, tmp_path):
        cli = make_cli(tmp_path, 'echo "ready"\necho "second line"\nexec sleep 30\n')
        t0 = time.time()
        first = InferenceBridge().prime(cli, "m", "warm up")
        assert first == "ready"
        assert time.time() - t0 < 10

    def test_prime_passes_conversation_flag(self, tmp_path):
        cli = make_cli(tmp_path, 'printf "%s " "$@"\necho\n')
        first = InferenceBridge(prime_max_tokens=5).prime(cli, "m", "p")
        assert first.split() == ["-m", "m", "-p", "p", "-n", "5", "-cnv"]

    def test_prime_without_output(self, tmp_path):
        cli = make_cli(tmp_path, "exit 1\n")
        assert InferenceBridge().prime(cli, "m", "p") == ""
