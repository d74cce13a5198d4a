"""
Unit tests for the rotating log handler.
"""

import logging

from sloppyview.logging.logger import TimestampRotatingFileHandler, get_logger


def _emit(handler, text):
    record = logging.LogRecord("sloppyview.test", logging.INFO, __file__, 1, text, None, None)
    handler.emit(record)


class TestTimestampRotatingFileHandler:
    """Rollover renames the live file with a timestamp."""

    def test_rollover_keeps_live_path(self, tmp_path):
        log_file = tmp_path / "app.log"
        handler = TimestampRotatingFileHandler(str(log_file), maxBytes=64, backupCount=0, encoding="utf-8")
        try:
            for i in range(20):
                _emit(handler, f"line {i} " + "x" * 20)
        finally:
            handler.close()
        rotated = list(tmp_path.glob("app_*.log"))
        assert log_file.exists()
        assert rotated

    def test_backup_count_prunes(self, tmp_path):
        log_file = tmp_path / "app.log"
        handler = TimestampRotatingFileHandler(str(log_file), maxBytes=32, backupCount=2, encoding="utf-8")
        try:
            for i in range(50):
                _emit(handler, f"line {i} " + "y" * 20)
        finally:
            handler.close()
        assert len(list(tmp_path.glob("app_*.log"))) <= 2


class TestGetLogger:
    def test_namespaced(self):
        assert get_logger("agents.engine").name == "sloppyview.agents.engine"
