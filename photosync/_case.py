"""Key-style normalization between the camelCase wire format and snake_case."""

import re
from typing import Any

_ACRONYM_BOUNDARY = re.compile(r"([A-Z]+)([A-Z][a-z])")
_WORD_BOUNDARY = re.compile(r"([a-z\d])([A-Z])")


def to_snake_case(key: str) -> str:
    """``storageKey`` -> ``storage_key``, ``photoURL`` -> ``photo_url``."""
    key = _ACRONYM_BOUNDARY.sub(r"\1_\2", key)
    key = _WORD_BOUNDARY.sub(r"\1_\2", key)
    return key.replace("-", "_").lower()


def snake_case_keys(value: Any) -> Any:
    """Recursively rewrite mapping keys to snake_case. Values are untouched."""
    if isinstance(value, dict):
        return {
            (to_snake_case(k) if isinstance(k, str) else k): snake_case_keys(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [snake_case_keys(item) for item in value]
    return value
