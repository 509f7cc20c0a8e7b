"""
Метрики Prometheus для очистки индекса.

Назначение:
- счётчики удалений и ожиданий мерджей
- текущая глубина незавершённых мутаций
- выгрузка в textfile для node-exporter (cron-запуски без /metrics)
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager

from prometheus_client import REGISTRY, Counter, Gauge, Histogram, write_to_textfile

# =============================================================================
# СЧЁТЧИКИ И МЕТРИКИ
# =============================================================================

DELETES_TOTAL = Counter(
    "graphite_index_cleanup_deletes_total",
    "Количество выполненных ALTER TABLE ... DELETE",
    ["table", "result"],  # ok|error
)

DELETE_LATENCY_MS = Histogram(
    "graphite_index_cleanup_delete_latency_ms",
    "Задержка постановки мутации удаления (мс)",
    ["table"],
    buckets=(5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000),
)

GATE_WAITS_TOTAL = Counter(
    "graphite_index_cleanup_gate_waits_total",
    "Сколько раз удаление ждало завершения мутаций",
    ["table"],
)

PENDING_MUTATIONS = Gauge(
    "graphite_index_cleanup_pending_mutations",
    "Незавершённые мутации таблицы на момент последнего опроса",
    ["table"],
)

LAST_RUN_DATES = Gauge(
    "graphite_index_cleanup_last_run_dates",
    "Количество дат, найденных последним запуском",
    ["table"],
)


@contextmanager
def track_delete_latency(table: str) -> Iterator[None]:
    started = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        DELETE_LATENCY_MS.labels(table=table).observe(elapsed_ms)


def record_delete_result(*, table: str, ok: bool) -> None:
    DELETES_TOTAL.labels(table=table, result="ok" if ok else "error").inc()


def record_gate_state(*, table: str, pending: int, waiting: bool) -> None:
    PENDING_MUTATIONS.labels(table=table).set(pending)
    if waiting:
        GATE_WAITS_TOTAL.labels(table=table).inc()


def write_metrics_textfile(path: str | None) -> bool:
    """
    Сохраняет текущий registry в файл (формат Prometheus text exposition).
    """
    if not path:
        return False
    write_to_textfile(path, REGISTRY)
    return True
