"""
Field-name translation between the stored (snake_case) schema and the
camelCase records handed to callers.

Only keys are rewritten; values pass through untouched. Both directions are
idempotent, so records may be normalised more than once.
"""
from __future__ import annotations

import re
from typing import Any

_SNAKE_BOUNDARY = re.compile(r"(?<=[a-z0-9])_([a-z0-9])")
_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def snake_to_camel(key: str) -> str:
    return _SNAKE_BOUNDARY.sub(lambda m: m.group(1).upper(), key)


def camel_to_snake(key: str) -> str:
    return _CAMEL_BOUNDARY.sub(lambda m: "_" + m.group(1).lower(), key)


def _convert(value: Any, convert_key) -> Any:
    if isinstance(value, dict):
        return {
            (convert_key(k) if isinstance(k, str) else k): _convert(v, convert_key)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_convert(item, convert_key) for item in value]
    return value


def to_internal(record: Any) -> Any:
    """Stored naming -> caller naming (``courier_id`` -> ``courierId``)."""
    return _convert(record, snake_to_camel)


def to_external(record: Any) -> Any:
    """Caller naming -> stored naming (``courierId`` -> ``courier_id``)."""
    return _convert(record, camel_to_snake)
