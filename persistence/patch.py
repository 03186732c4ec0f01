from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping

from .typed_values import (
    BooleanValue,
    Document,
    StringValue,
    TimestampValue,
    TypedValue,
    is_typed_value,
)

logger = logging.getLogger(__name__)


def build_patch(updates: Mapping[str, Any]) -> Document:
    """
    Turn a mapping of field name -> native value into a partial Document.

    Recognised shapes:
      - str       -> stringValue
      - bool      -> booleanValue
      - datetime  -> timestampValue
      - a TypedValue is passed through untouched

    Anything else (ints, lists, None, ...) is left out of the patch. Callers
    that need those shapes must hand in a TypedValue (see typed_patch).
    """
    doc: Document = {}
    for name, value in updates.items():
        if is_typed_value(value):
            doc[name] = value
        elif isinstance(value, bool):
            doc[name] = BooleanValue(value)
        elif isinstance(value, str):
            doc[name] = StringValue(value)
        elif isinstance(value, datetime):
            doc[name] = TimestampValue(value)
        else:
            logger.debug("PATCH: dropping field %s with unsupported type %s", name, type(value).__name__)
    return doc


def typed_patch(updates: Mapping[str, TypedValue]) -> Document:
    """Like build_patch, but every value must already be a TypedValue."""
    doc: Document = {}
    for name, value in updates.items():
        if not is_typed_value(value):
            raise TypeError(f"patch field {name!r} is not a typed value: {type(value).__name__}")
        doc[name] = value
    return doc
