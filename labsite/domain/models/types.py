"""Column types shared by the domain models."""

import json
from typing import Any, Optional

from sqlalchemy import Text
from sqlalchemy.types import TypeDecorator


def serialize_list(value: Optional[list[Any]]) -> Optional[str]:
    """Encode a list for a TEXT column. ``None`` is stored as an empty list."""
    if value is None:
        value = []
    if not isinstance(value, (list, tuple)):
        raise TypeError(f"Expected a list, got {type(value).__name__}")
    return json.dumps(list(value), ensure_ascii=False)


def deserialize_list(raw: Optional[str]) -> list[Any]:
    """Decode a TEXT column written by ``serialize_list``; NULL and blank read as ``[]``."""
    if raw is None or not raw.strip():
        return []
    value = json.loads(raw)
    if not isinstance(value, list):
        raise ValueError("Stored value is not a JSON array")
    return value


class JSONEncodedList(TypeDecorator):
    """A Python list persisted as JSON text."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return serialize_list(value)

    def process_result_value(self, value, dialect):
        return deserialize_list(value)
