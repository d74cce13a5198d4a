from __future__ import annotations

from sloppyview.config.engine_config import DbType

# Role delimiters of the phi-3 chat template the bundled model expects.
# Order and spelling must not change.
SYSTEM_TAG = "<|system|>"
USER_TAG = "<|user|>"
ASSISTANT_TAG = "<|assistant|>"
END_TAG = "<|end|>"

PRIMING_PREAMBLE = (
    "You are a helpful assistant. You will generate proper SQL statements for me "
    "based on the question user asked. For running in "
)


def priming_prompt(db_type: DbType) -> str:
    return f"{PRIMING_PREAMBLE}{db_type.value}"


def question_prompt(knowledge: str, db_type: DbType, question: str) -> str:
    """Render the per-question prompt.

    system: knowledge + target dialect, user: the literal question, then the
    assistant marker so the model starts answering.
    """
    return (
        f"{SYSTEM_TAG}You are a helpful assistant based on the following knowledge: "
        f"{knowledge}. You will generate proper SQL statements for {db_type.value}.{END_TAG}"
        f"{USER_TAG}{question}{END_TAG}"
        f".{ASSISTANT_TAG}"
    )
