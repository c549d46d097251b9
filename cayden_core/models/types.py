"""
Custom column types.

JSONText stores a structured payload as canonical JSON text:
keys sorted, compact separators, and Decimal / UUID / datetime
values written as strings. Reading returns a plain dict. The
encoding never changes for existing keys, so rows written today
stay readable when new keys are added later.
"""

import json
from collections.abc import Mapping

from sqlalchemy import Text
from sqlalchemy.types import TypeDecorator


def dumps_details(payload: Mapping) -> str:
    if not isinstance(payload, Mapping):
        raise TypeError(
            f"details must be a mapping, got {type(payload).__name__}"
        )
    return json.dumps(
        dict(payload), sort_keys=True, separators=(",", ":"), default=str
    )


def loads_details(text: str | None) -> dict:
    if text is None:
        return {}
    return json.loads(text)


class JSONText(TypeDecorator):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return dumps_details(value)

    def process_result_value(self, value, dialect):
        return loads_details(value)
