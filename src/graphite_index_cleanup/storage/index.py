"""
Чтение и удаление в таблице индекса.

Назначение:
- перечисление дат и путей под паттернами
- выполнение одного ALTER TABLE ... DELETE

Ошибки SQLAlchemy/драйвера оборачиваются в QueryError/ExecutionError;
автоматических повторов нет.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import TextClause, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from graphite_index_cleanup.common.errors import ExecutionError, QueryError
from graphite_index_cleanup.common.logging import get_project_logger
from graphite_index_cleanup.common.time import as_day

from .queries import IndexQueryPlanner

log = get_project_logger()


def _sql(statement: str) -> TextClause:
    # двоеточие в литерале паттерна не должно стать bind-параметром
    return text(statement.replace(":", "\\:"))


class IndexRepository:
    def __init__(self, conn: Connection, planner: IndexQueryPlanner) -> None:
        self.conn = conn
        self.planner = planner

    def _select_column(self, query: str) -> list:
        log.debug("index_query", extra={"payload": {"query": query}})
        try:
            rows = self.conn.execute(_sql(query)).fetchall()
        except SQLAlchemyError as e:
            log.error(
                "index_query_failed",
                extra={"payload": {"err": str(e)[:200], "query": query[:300]}},
            )
            raise QueryError(str(e), details={"query": query}) from e
        return [row[0] for row in rows]

    def list_dates(self) -> list[date]:
        return [as_day(v) for v in self._select_column(self.planner.dates_query())]

    def list_paths(self) -> list[str]:
        return [str(v) for v in self._select_column(self.planner.paths_query())]

    def execute_delete(self, statement: str) -> None:
        log.info("index_delete", extra={"payload": {"statement": statement}})
        try:
            self.conn.execute(_sql(statement))
        except SQLAlchemyError as e:
            log.error(
                "index_delete_failed",
                extra={"payload": {"err": str(e)[:200], "statement": statement[:300]}},
            )
            raise ExecutionError(str(e), details={"statement": statement}) from e
