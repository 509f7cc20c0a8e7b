"""
Scheduler удаления устаревших записей индекса по датам.

Алгоритм:
- enumerate: SELECT Date / SELECT Path по паттернам и фильтру дат
- ни одного пути → no_match (защитная остановка, монитор не опрашивается)
- для каждой даты: gate (ждём, пока мутаций меньше потолка) → execute → cooldown
- после последней даты cooldown не делается

Выполнение строго последовательное: в полёте не больше одного ALTER.
Ошибка любого запроса фатальна; уже удалённые даты не откатываются.
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Protocol

from graphite_index_cleanup.common.config import CleanupConfig
from graphite_index_cleanup.common.errors import (
    CancelledError,
    ExecutionError,
    NoMatchError,
)
from graphite_index_cleanup.common.logging import get_project_logger
from graphite_index_cleanup.common.metrics import (
    LAST_RUN_DATES,
    record_delete_result,
    track_delete_latency,
)
from graphite_index_cleanup.common.time import format_day
from graphite_index_cleanup.domain.enums import SchedulerState
from graphite_index_cleanup.domain.state_machine import is_terminal, transition
from graphite_index_cleanup.storage.queries import IndexQueryPlanner

from .mutation_monitor import GateDecision, LinearBackoff

log = get_project_logger()

# Такой день бывает первым в выборке дат; печатается отдельно от диапазона.
SENTINEL_DATE = date(1970, 2, 12)


class IndexGateway(Protocol):
    def list_dates(self) -> list[date]: ...

    def list_paths(self) -> list[str]: ...

    def execute_delete(self, statement: str) -> None: ...


class Gate(Protocol):
    def check(self, ceiling: int, *, waiting_for: str | None = None) -> GateDecision: ...


@dataclass
class CleanupReport:
    state: SchedulerState
    dates: list[date] = field(default_factory=list)
    path_count: int = 0
    statements: list[str] = field(default_factory=list)
    executed: int = 0
    waits: int = 0


def format_dates_summary(dates: Sequence[date]) -> str:
    """
    ' 1970-02-12 2020-01-01 - 2020-01-31': sentinel-день (если первый),
    затем первая и последняя даты.
    """
    if not dates:
        return ""
    out = ""
    i = 0
    if dates[0] == SENTINEL_DATE:
        out += f" {format_day(dates[0])}"
        i += 1
    if i < len(dates):
        out += f" {format_day(dates[i])}"
    if i != len(dates) - 1:
        out += f" - {format_day(dates[-1])}"
    return out


class DeletionScheduler:
    def __init__(
        self,
        config: CleanupConfig,
        planner: IndexQueryPlanner,
        index: IndexGateway,
        monitor: Gate,
        *,
        out: Callable[[str], None] = print,
        sleep: Callable[[float], None] = time.sleep,
        confirm: Callable[[], bool] | None = None,
    ) -> None:
        self.config = config
        self.planner = planner
        self.index = index
        self.monitor = monitor
        self.out = out
        self.sleep = sleep
        self.confirm = confirm
        self.backoff = LinearBackoff(
            start_sec=config.wait_start_sec,
            step_sec=config.wait_step_sec,
            max_sec=config.wait_max_sec,
        )
        self.state = SchedulerState.init
        self.history: list[SchedulerState] = [self.state]

    def _move(self, target: SchedulerState) -> None:
        result = transition(self.state, target)
        if not result.ok:
            raise RuntimeError(f"scheduler: {result.reason}")
        self.state = result.state
        self.history.append(self.state)

    def run(self) -> CleanupReport:
        try:
            return self._run()
        except Exception as e:
            if not is_terminal(self.state):
                self._move(SchedulerState.failed)
                log.error(
                    "cleanup_failed",
                    extra={"payload": {"table": self.planner.index_table, "err": str(e)[:200]}},
                )
            raise

    def _run(self) -> CleanupReport:
        table = self.planner.index_table
        self._move(SchedulerState.enumerate)
        self.out("Check index")
        log.info("index_check_started", extra={"payload": {"table": table}})

        dates = self.index.list_dates()
        paths = self.index.list_paths()
        LAST_RUN_DATES.labels(table=table).set(len(dates))

        if self.config.show_paths:
            for path in paths:
                self.out(path)

        if not paths:
            self._move(SchedulerState.no_match)
            log.error("index_no_match", extra={"payload": {"table": table}})
            raise NoMatchError(details={"table": table, "dates": len(dates)})

        self.out(f"Read {len(paths)} paths in {len(dates)} days:{format_dates_summary(dates)}")

        execute = self.config.execute
        if self.config.ask:
            if self.confirm is None or not self.confirm():
                self._move(SchedulerState.cancelled)
                log.warning("cleanup_cancelled", extra={"payload": {"table": table}})
                raise CancelledError()
            execute = True

        plan = self.planner.plan(dates)
        report = CleanupReport(
            state=self.state,
            dates=list(dates),
            path_count=len(paths),
            statements=[item.statement for item in plan],
        )

        if not execute:
            for item in plan:
                self.out(f"{item.statement}\n")
            self._move(SchedulerState.done)
            report.state = self.state
            return report

        total = len(plan)
        for i, item in enumerate(plan):
            report.waits += self._wait_for_gate(item.day, i, total)

            self._move(SchedulerState.execute)
            with track_delete_latency(table):
                try:
                    self.index.execute_delete(item.statement)
                except ExecutionError:
                    record_delete_result(table=table, ok=False)
                    raise
            record_delete_result(table=table, ok=True)
            report.executed += 1
            log.info(
                "index_date_deleted",
                extra={"payload": {"table": table, "date": format_day(item.day), "n": i + 1, "of": total}},
            )

            if i < total - 1:
                self._move(SchedulerState.cooldown)
                self.sleep(self.config.cooldown_sec)

        self._move(SchedulerState.done)
        report.state = self.state
        log.info(
            "cleanup_finished",
            extra={"payload": {"table": table, "executed": report.executed, "waits": report.waits}},
        )
        return report

    def _wait_for_gate(self, day: date, i: int, total: int) -> int:
        """
        Блокируется, пока мутаций не станет меньше потолка. Возвращает число ожиданий.
        """
        self._move(SchedulerState.gate)
        attempt = 0
        while True:
            decision = self.monitor.check(
                self.config.max_merges, waiting_for=f"{format_day(day)} ({i} of {total})"
            )
            if decision.proceed:
                return attempt
            delay = self.backoff.delay(attempt)
            log.info(
                "merge_wait",
                extra={"payload": {"date": format_day(day), "attempt": attempt, "sleep_sec": delay}},
            )
            self.sleep(delay)
            attempt += 1
            self._move(SchedulerState.gate)
