"""
Job очистки индекса.

Назначение:
- собрать планировщик запросов, монитор мутаций и scheduler из CleanupConfig
- открыть одно соединение на весь запуск
- выгрузить метрики в textfile (если настроено)
"""

from __future__ import annotations

import time
from collections.abc import Callable

from graphite_index_cleanup.common.config import CleanupConfig, get_settings
from graphite_index_cleanup.common.logging import get_project_logger
from graphite_index_cleanup.common.metrics import write_metrics_textfile
from graphite_index_cleanup.domain.enums import RunMode
from graphite_index_cleanup.services.deletion_scheduler import CleanupReport, DeletionScheduler
from graphite_index_cleanup.services.mutation_monitor import MutationMonitor
from graphite_index_cleanup.storage.db import db_connection
from graphite_index_cleanup.storage.index import IndexRepository
from graphite_index_cleanup.storage.mutations import MutationSource
from graphite_index_cleanup.storage.queries import IndexQueryPlanner

log = get_project_logger()


def resolve_mode(config: CleanupConfig, *, show_query: bool = False) -> RunMode:
    if show_query:
        return RunMode.query
    if config.execute:
        return RunMode.execute
    return RunMode.dry_run


def build_planner(config: CleanupConfig) -> IndexQueryPlanner:
    return IndexQueryPlanner(
        config.index_table,
        config.effective_patterns,
        config.date_filter,
    )


def show_query(config: CleanupConfig) -> str:
    """
    Запрос перечисления путей, без подключения к ClickHouse.
    """
    return build_planner(config).paths_query()


def run(
    config: CleanupConfig,
    *,
    dsn: str | None = None,
    out: Callable[[str], None] = print,
    confirm: Callable[[], bool] | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> CleanupReport:
    settings = get_settings()
    planner = build_planner(config)

    log.info(
        "cleanup_job_started",
        extra={
            "payload": {
                "table": planner.index_table,
                "mode": resolve_mode(config).value,
                "patterns": len(planner.patterns),
                "date_filter": config.date_filter.render() if config.date_filter else None,
                "max_merges": config.max_merges,
            }
        },
    )
    try:
        with db_connection(dsn or settings.clickhouse_dsn) as conn:
            monitor = MutationMonitor(
                MutationSource(conn),
                database=config.database,
                table=planner.index_table,
                out=out,
            )
            scheduler = DeletionScheduler(
                config,
                planner,
                IndexRepository(conn, planner),
                monitor,
                out=out,
                sleep=sleep,
                confirm=confirm,
            )
            report = scheduler.run()
    finally:
        if write_metrics_textfile(settings.metrics_textfile):
            log.debug("metrics_textfile_written", extra={"payload": {"path": settings.metrics_textfile}})

    log.info(
        "cleanup_job_finished",
        extra={"payload": {"state": report.state.value, "executed": report.executed}},
    )
    return report
