"""
Планировщик запросов к таблице индекса.

Назначение:
- SELECT Date / SELECT Path по паттернам и фильтру дат
- ALTER TABLE ... DELETE строго по одной дате

Удаление никогда не делается диапазоном: каждый ALTER покрывает ровно
одну дату и весь предикат по паттернам, как бы широк ни был фильтр дат.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date

from graphite_index_cleanup.common.errors import ConfigurationError
from graphite_index_cleanup.filters.date_filter import DateFilter
from graphite_index_cleanup.filters.patterns import build_filter

_TABLE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")


@dataclass(frozen=True)
class PlannedDelete:
    day: date
    statement: str


@dataclass(frozen=True)
class DeletionPlan:
    items: tuple[PlannedDelete, ...]

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)


def validate_table_name(name: str) -> str:
    name = (name or "").strip()
    if not _TABLE_RE.match(name):
        raise ConfigurationError(f"invalid index table name {name!r}", details={"table": name})
    return name


class IndexQueryPlanner:
    def __init__(
        self,
        index_table: str,
        patterns: Sequence[str],
        date_filter: DateFilter | None = None,
    ) -> None:
        if not patterns:
            raise ConfigurationError("empty glob list")
        self.index_table = validate_table_name(index_table)
        self.patterns = tuple(patterns)
        self.date_filter = date_filter

    def _where(self) -> str:
        where = build_filter(self.patterns)
        if self.date_filter is not None:
            where += f" AND ({self.date_filter.render()})"
        return where

    def _group_query(self, column: str) -> str:
        return f"SELECT {column} FROM {self.index_table} {self._where()} GROUP BY {column}"

    def dates_query(self) -> str:
        return self._group_query("Date")

    def paths_query(self) -> str:
        return self._group_query("Path")

    def delete_statement(self, day: date) -> str:
        return f"ALTER TABLE {self.index_table} DELETE {build_filter(self.patterns, day)}"

    def plan(self, dates: Iterable[date]) -> DeletionPlan:
        return DeletionPlan(
            items=tuple(PlannedDelete(day=d, statement=self.delete_statement(d)) for d in dates)
        )
