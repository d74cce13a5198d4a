import logging
import os
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

_INITIALIZED = False

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
ROOT_LOGGER = "sloppyview"


class TimestampRotatingFileHandler(RotatingFileHandler):
    """Size-based rotation that renames the full file with a timestamp.

    The live log always stays at ``log_file``; on rollover the old file becomes
    ``<stem>_<YYYYmmdd_HHMMSS><suffix>``. ``backupCount=0`` keeps every rotated
    file, otherwise only the newest ``backupCount`` survive.
    """

    def _rotated_name(self) -> Path:
        base = Path(self.baseFilename)
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        candidate = base.with_name(f"{base.stem}_{ts}{base.suffix or '.log'}")
        n = 1
        while candidate.exists():
            candidate = base.with_name(f"{base.stem}_{ts}_{n}{base.suffix or '.log'}")
            n += 1
        return candidate

    def _prune(self) -> None:
        if not self.backupCount or self.backupCount <= 0:
            return
        base = Path(self.baseFilename)
        rotated = sorted(
            base.parent.glob(f"{base.stem}_*{base.suffix or '.log'}"),
            key=lambda p: p.stat().st_mtime,
            reverse=True,
        )
        for stale in rotated[self.backupCount:]:
            try:
                stale.unlink()
            except OSError:
                pass

    def doRollover(self) -> None:
        if self.stream:
            self.stream.close()
            self.stream = None

        if os.path.exists(self.baseFilename):
            try:
                os.replace(self.baseFilename, self._rotated_name())
            except OSError:
                # keep logging into the current file rather than failing the app
                pass
        self._prune()

        if not self.delay:
            self.stream = self._open()


def init_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = "logs/sloppyview.log",
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 0,
) -> None:
    """Attach file + console handlers to the ``sloppyview`` logger once per process."""
    global _INITIALIZED
    if _INITIALIZED:
        return

    level = getattr(logging, (log_level or "INFO").upper(), logging.INFO)
    formatter = logging.Formatter(LOG_FORMAT)

    root = logging.getLogger(ROOT_LOGGER)
    root.setLevel(level)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = TimestampRotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    _INITIALIZED = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
