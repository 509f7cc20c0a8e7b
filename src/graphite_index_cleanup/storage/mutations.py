"""
Фоновые мутации ClickHouse (system.mutations).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from graphite_index_cleanup.common.errors import QueryError
from graphite_index_cleanup.common.logging import get_project_logger

log = get_project_logger()

_MUTATIONS_QUERY = text(
    "SELECT mutation_id, create_time, parts_to_do, is_done, command "
    "FROM system.mutations "
    "WHERE is_done = :is_done AND database = :database AND table = :table"
)

_TARGET_DATE_RE = re.compile(r"Date = '([^']*)'")


@dataclass(frozen=True)
class Mutation:
    mutation_id: str
    create_time: datetime
    parts_to_do: int
    is_done: bool
    command: str

    @property
    def target_date(self) -> str:
        """
        Дата из текста команды (последнее вхождение `Date = '...'`), если есть.
        """
        found = _TARGET_DATE_RE.findall(self.command or "")
        return found[-1] if found else ""


class MutationSource:
    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def list_mutations(self, *, database: str, table: str, is_done: bool = False) -> list[Mutation]:
        params = {"is_done": int(is_done), "database": database, "table": table}
        try:
            rows = self.conn.execute(_MUTATIONS_QUERY, params).fetchall()
        except SQLAlchemyError as e:
            log.error(
                "mutations_query_failed",
                extra={"payload": {"err": str(e)[:200], "database": database, "table": table}},
            )
            raise QueryError(str(e), details={"database": database, "table": table}) from e

        return [
            Mutation(
                mutation_id=str(r[0]),
                create_time=r[1],
                parts_to_do=int(r[2]),
                is_done=bool(r[3]),
                command=str(r[4] or ""),
            )
            for r in rows
        ]
