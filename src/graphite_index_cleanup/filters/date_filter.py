"""
Фильтр по датам индекса.

Грамматика (токены через пробел):
    Date <op> 'YYYY-MM-DD' [AND Date <op> 'YYYY-MM-DD' ...]
    op: > >= < <= = !=

Текст разбирается в типизированный DateFilter и рендерится обратно
тем же синтаксисом, поэтому в SQL попадают только проверенные значения.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

from graphite_index_cleanup.common.errors import ConfigurationError
from graphite_index_cleanup.common.time import format_day, parse_day

DATE_FIELD = "Date"
CONJUNCTION = "AND"
COMPARATORS = (">", ">=", "<", "<=", "=", "!=")

_DATE_LITERAL_RE = re.compile(r"^'[0-9]{4}-[0-9]{2}-[0-9]{2}'$")

GRAMMAR = "Date <op> 'YYYY-MM-DD' [AND Date <op> 'YYYY-MM-DD' ...]"


@dataclass(frozen=True)
class DateClause:
    comparator: str
    day: date

    def render(self) -> str:
        return f"{DATE_FIELD} {self.comparator} '{format_day(self.day)}'"


@dataclass(frozen=True)
class DateFilter:
    clauses: tuple[DateClause, ...]

    def render(self) -> str:
        return f" {CONJUNCTION} ".join(c.render() for c in self.clauses)

    def __str__(self) -> str:
        return self.render()


def _invalid(message: str, token: str | None = None) -> ConfigurationError:
    details = {"expected": GRAMMAR}
    if token is not None:
        details["token"] = token
    return ConfigurationError(
        f"Invalid date filter: {message} (expected {GRAMMAR})", details=details
    )


def _parse_day_token(token: str) -> date:
    if not _DATE_LITERAL_RE.match(token):
        raise _invalid(f"use correct date instead of {token}", token)
    try:
        return parse_day(token[1:-1])
    except ValueError as e:
        raise _invalid(f"use correct date instead of {token}", token) from e


def parse_date_filter(text: str | None) -> DateFilter | None:
    """
    Разбор и валидация фильтра. Пустая строка означает "без фильтра".
    """
    if text is None or not text.strip():
        return None

    tokens = text.split()
    if len(tokens) < 3:
        raise _invalid("too few tokens")

    clauses: list[DateClause] = []
    comparator = ""
    pos = 0
    for i, token in enumerate(tokens):
        if pos == 0:
            if token != DATE_FIELD:
                raise _invalid(f"use {DATE_FIELD} instead of {token}", token)
            pos = 1
        elif pos == 1:
            if token not in COMPARATORS:
                raise _invalid(f"use correct comparator instead of {token}", token)
            comparator = token
            pos = 2
        elif pos == 2:
            clauses.append(DateClause(comparator=comparator, day=_parse_day_token(token)))
            pos = 3
        else:
            if token != CONJUNCTION:
                raise _invalid(f"use {CONJUNCTION} instead of {token}", token)
            if i == len(tokens) - 1:
                raise _invalid(f"can't use {token} at the end", token)
            pos = 0

    if pos != 3:
        raise _invalid("incomplete clause", tokens[-1])

    return DateFilter(clauses=tuple(clauses))
