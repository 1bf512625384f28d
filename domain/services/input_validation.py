from __future__ import annotations

import re

from domain.errors import EmptyInputError

MAX_INPUT_LENGTH = 5000

_WHITESPACE_RUN = re.compile(r"\s+")


def validate_input(text: str | None, max_length: int = MAX_INPUT_LENGTH) -> str:
    if not text or not text.strip():
        raise EmptyInputError("Input text cannot be empty")
    if len(text) > max_length:
        msg = f"Input text is too long (max {max_length} characters)"
        raise EmptyInputError(msg)
    return text


def preprocess_input(text: str) -> str:
    return _WHITESPACE_RUN.sub(" ", text.strip())
