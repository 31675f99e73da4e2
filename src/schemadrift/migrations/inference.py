"""Best-effort table-name inference from migration names.

Only consulted when no definition is available (a bookkeeping record whose
file is gone). When a definition exists, its ``primary_table`` always wins.

The ladder is an ordered tuple of matchers so new naming conventions can be
added by passing a different ladder, without touching the classifier.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

# 2024_01_01_000000_ | 20240101_0001_ | 0001_
_PREFIX = re.compile(r"^(?:\d{4}_\d{2}_\d{2}_\d{6}|\d{8}_\d+|\d+)_")


@dataclass(frozen=True, slots=True)
class TableNameMatcher:
    """One rung of the inference ladder. Group 1 of ``pattern`` is the table."""

    label: str
    pattern: re.Pattern[str]
    anywhere: bool = False  # search instead of anchored match

    def match(self, description: str) -> str | None:
        m = self.pattern.search(description) if self.anywhere else self.pattern.match(description)
        return m.group(1) if m else None


DEFAULT_MATCHERS: tuple[TableNameMatcher, ...] = (
    TableNameMatcher("create", re.compile(r"^create_(.+)_table$")),
    TableNameMatcher("to_from", re.compile(r"(?:_to_|_from_)(.+)_table$"), anywhere=True),
    TableNameMatcher("drop", re.compile(r"^drop_(.+)_table$")),
    TableNameMatcher("modify", re.compile(r"^(?:modify|update|alter)_(.+)_table$")),
)


def strip_prefix(name: str) -> str:
    """Drop a leading timestamp or sequence prefix."""
    return _PREFIX.sub("", name, count=1)


def infer_table_name(
    name: str,
    matchers: Sequence[TableNameMatcher] = DEFAULT_MATCHERS,
) -> str | None:
    """Infer the primary table from a migration name, or None.

    >>> infer_table_name("2024_01_01_000000_create_users_table")
    'users'
    >>> infer_table_name("2024_01_01_000000_add_email_to_users_table")
    'users'
    """
    description = strip_prefix(name)
    for matcher in matchers:
        table = matcher.match(description)
        if table:
            return table
    return None
