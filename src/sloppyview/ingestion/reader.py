from __future__ import annotations
import os
from pathlib import Path
from typing import List

from sloppyview.logging.logger import get_logger
from sloppyview.exceptions.errors import FileIOError, SqlReadError

log = get_logger("ingestion.reader")


def _raise_walk_error(e: OSError) -> None:
    raise SqlReadError(f"cannot walk {e.filename}: {e.strerror or e}") from e


def read_sql_files(path: str) -> str:
    """Concatenate every file under ``path`` (recursively, sorted), each followed by a newline.

    Used to build the seed knowledge text handed to ``configure``.
    """
    root = Path(path)
    if not root.is_dir():
        raise SqlReadError(f"not a directory: {path}")

    parts: List[str] = []
    for dirpath, dirnames, filenames in os.walk(root, onerror=_raise_walk_error):
        dirnames.sort()
        for name in sorted(filenames):
            p = Path(dirpath) / name
            try:
                parts.append(p.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError) as e:
                log.error("Failed reading knowledge file", extra={"source_file": str(p), "error": str(e)})
                raise FileIOError(f"{p}: {e}") from e
            parts.append("\n")

    log.info("Knowledge files read", extra={"root": str(root), "files": len(parts) // 2})
    return "".join(parts)
