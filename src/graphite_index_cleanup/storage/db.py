"""
Подключение к ClickHouse через SQLAlchemy.

Назначение:
- создание engine (clickhouse-sqlalchemy, native протокол)
- контекстный менеджер для единственного соединения на запуск

Транзакций нет: каждый запрос и каждый ALTER идёт отдельным round trip.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from graphite_index_cleanup.common.errors import QueryError
from graphite_index_cleanup.common.logging import get_project_logger

log = get_project_logger()


def create_index_engine(dsn: str) -> Engine:
    return create_engine(dsn, pool_pre_ping=True, pool_size=1, max_overflow=0)


# =============================================================================
# CONTEXT MANAGER
# =============================================================================
@contextmanager
def db_connection(dsn: str) -> Iterator[Connection]:
    """
    Одно соединение на весь запуск.

    Использование:
        with db_connection(settings.clickhouse_dsn) as conn:
            IndexRepository(conn, planner).list_dates()
    """
    engine = create_index_engine(dsn)
    try:
        try:
            conn = engine.connect()
        except SQLAlchemyError as e:
            log.error("clickhouse_connect_failed", extra={"payload": {"err": str(e)[:200]}})
            raise QueryError(f"can't connect to clickhouse: {e}") from e
        with conn:
            yield conn
    finally:
        engine.dispose()
