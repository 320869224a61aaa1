"""
SQL literal rendering for statements built as text.

The batch insert path interpolates values directly instead of binding
parameters, so every free-text value goes through ``escape_text`` (single
quotes doubled) before it is placed between quotes.
"""

import json
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

NULL = "NULL"
EMPTY_TEXT_ARRAY = "ARRAY[]::text[]"


def escape_text(value: Any) -> str:
    """Double embedded single quotes."""
    return str(value).replace("'", "''")


def quote(value: Any) -> str:
    """Always-quoted literal (identifiers, hashes)."""
    if value is None:
        return NULL
    return f"'{escape_text(value)}'"


def text_literal(value: Any) -> str:
    """Quoted text, ``NULL`` for missing or empty values."""
    if value is None or value == "":
        return NULL
    return quote(value)


def timestamp_literal(value: Any) -> str:
    """ISO-8601 timestamp literal."""
    if value is None or value == "":
        return NULL
    if isinstance(value, (datetime, date)):
        return quote(value.isoformat())
    return quote(value)


def numeric_literal(value: Any, default: Any = None) -> str:
    """
    Bare numeric literal.

    Raises:
        ValueError: If the value is not numeric
    """
    if value is None or value == "":
        if default is None:
            return NULL
        value = default
    if isinstance(value, bool):
        return "1" if value else "0"
    try:
        number = Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Not a numeric value: {value!r}") from None
    if not number.is_finite():
        raise ValueError(f"Not a finite numeric value: {value!r}")
    return str(value) if isinstance(value, (int, float, Decimal)) else format(number, "f")


def json_literal(value: Any) -> str:
    """JSON document as a quoted literal; already-serialized text is kept as is."""
    if value is None:
        return NULL
    text = value if isinstance(value, str) else json.dumps(value, ensure_ascii=False, default=str)
    return quote(text)


def text_array_literal(items: Iterable[Any]) -> str:
    """Typed text array, each element escaped; empty input gives a typed empty array."""
    elements = [quote(item) for item in items]
    if not elements:
        return EMPTY_TEXT_ARRAY
    return f"ARRAY[{','.join(elements)}]::text[]"


def quote_identifier(name: str) -> str:
    """Double-quoted identifier with embedded quotes doubled."""
    return '"' + str(name).replace('"', '""') + '"'
