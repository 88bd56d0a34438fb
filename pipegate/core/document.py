"""
Tagged access into untyped JSON documents.

Decision responses are arbitrary JSON. Rather than indexing into them and
catching KeyError/TypeError, callers ask for a field with the shape they
expect and get back a FieldLookup that says whether the field was there,
missing, or present with the wrong type.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple, Type, Union


class FieldStatus(Enum):
    PRESENT     = "present"
    ABSENT      = "absent"
    WRONG_SHAPE = "wrong_shape"


@dataclass(frozen=True)
class FieldLookup:
    """
    Result of get_field().

    bool(lookup) is True iff the field exists and has the requested shape.
    """
    key:    str
    status: FieldStatus
    value:  Any = None

    def __bool__(self) -> bool:
        return self.status is FieldStatus.PRESENT

    @property
    def absent(self) -> bool:
        return self.status is FieldStatus.ABSENT

    @property
    def wrong_shape(self) -> bool:
        return self.status is FieldStatus.WRONG_SHAPE


def get_field(
    document: Any,
    key: str,
    shape: Union[Type, Tuple[Type, ...]],
) -> FieldLookup:
    """
    Look up `key` in `document` and check the value is an instance of `shape`.

    A non-dict document has no fields, so every key is ABSENT.
    """
    if not isinstance(document, dict) or key not in document:
        return FieldLookup(key=key, status=FieldStatus.ABSENT)

    value = document[key]
    # bool is an int subclass; never let True pass as a number
    if isinstance(value, bool) and bool not in _as_tuple(shape):
        return FieldLookup(key=key, status=FieldStatus.WRONG_SHAPE, value=value)
    if not isinstance(value, shape):
        return FieldLookup(key=key, status=FieldStatus.WRONG_SHAPE, value=value)
    return FieldLookup(key=key, status=FieldStatus.PRESENT, value=value)


def parse_document(text: str) -> Optional[dict]:
    """Parse a JSON object. Returns None when text is not a JSON object."""
    try:
        document = json.loads(text)
    except (TypeError, ValueError):
        return None
    if not isinstance(document, dict):
        return None
    return document


def as_text(value: Any) -> str:
    """Render a JSON value as text: strings verbatim, anything else as JSON."""
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True)


def _as_tuple(shape) -> tuple:
    return shape if isinstance(shape, tuple) else (shape,)
