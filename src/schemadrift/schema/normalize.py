"""Type and default-value normalization for schema comparison.

Different drivers report the same logical type differently (MySQL's
``int(11)`` vs PostgreSQL's ``integer``). Comparison always happens on the
normalized form; reports always show the raw form.
"""

from __future__ import annotations

import re
from typing import Any

# Matched before width stripping so tinyint(1) becomes boolean, not tinyinteger
_EXACT_ALIASES = {
    "tinyint(1)": "boolean",
    "double precision": "double",
    "character varying": "varchar",
}

_INTEGER_WIDTH = re.compile(r"^(tinyint|smallint|mediumint|int|bigint)\(\d+\)")
_TEMPORAL_PRECISION = re.compile(r"^((?:timestamp|datetime|time)(?:tz)?)\(\d+\)")

_ALIASES = {
    "int": "integer",
    "bool": "boolean",
    "tinyint": "tinyinteger",
    "smallint": "smallinteger",
    "mediumint": "mediuminteger",
    "bigint": "biginteger",
    "real": "float",
}


def normalize_type(raw_type: str) -> str:
    """Normalize a column type string for comparison.

    >>> normalize_type("INT(11)")
    'integer'
    >>> normalize_type("tinyint(1)")
    'boolean'
    """
    value = raw_type.strip().lower()

    if value in _EXACT_ALIASES:
        return _EXACT_ALIASES[value]

    value = _INTEGER_WIDTH.sub(r"\1", value)
    value = _TEMPORAL_PRECISION.sub(r"\1", value)

    return _ALIASES.get(value, value)


def normalize_default(value: Any) -> str | None:
    """Normalize a column default so boolean-equivalent literals compare equal."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "1" if value else "0"

    text = str(value).strip("'\"")
    lowered = text.lower()
    if lowered in ("true", "1"):
        return "1"
    if lowered in ("false", "0"):
        return "0"
    return text
