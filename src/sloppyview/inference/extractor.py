from __future__ import annotations

import re

from sloppyview.exceptions.errors import ExecutionError

# Shortest span from the word "select" up to and including the first ";".
# A heuristic, not a parser: only SELECT statements are recognised.
SQL_SPAN_RE = re.compile(r"\bselect\b.*?;", re.IGNORECASE | re.DOTALL)

EXTRACT_FAILED = "Failed to extract SQL query from AI response"


def extract_sql(response: str) -> str:
    m = SQL_SPAN_RE.search(response or "")
    if not m:
        raise ExecutionError(EXTRACT_FAILED)
    return m.group(0)
