from __future__ import annotations

from datetime import date

import pytest

from graphite_index_cleanup.common.config import CleanupConfig
from graphite_index_cleanup.common.errors import (
    CancelledError,
    ExecutionError,
    NoMatchError,
    QueryError,
)
from graphite_index_cleanup.domain.enums import SchedulerState
from graphite_index_cleanup.services.deletion_scheduler import (
    DeletionScheduler,
    format_dates_summary,
)
from graphite_index_cleanup.services.mutation_monitor import GateDecision
from graphite_index_cleanup.storage.queries import IndexQueryPlanner

D1 = date(2020, 2, 1)
D2 = date(2020, 2, 2)
D3 = date(2020, 2, 3)


class _FakeIndex:
    def __init__(self, dates, paths, *, fail_on: date | None = None, fail_list: bool = False) -> None:
        self.dates = dates
        self.paths = paths
        self.fail_on = fail_on
        self.fail_list = fail_list
        self.deleted: list[str] = []
        self.events: list[str] = []

    def list_dates(self):
        if self.fail_list:
            raise QueryError("boom")
        return list(self.dates)

    def list_paths(self):
        return list(self.paths)

    def execute_delete(self, statement: str) -> None:
        self.events.append("delete")
        if self.fail_on is not None and statement.endswith(f"Date='{self.fail_on.isoformat()}'"):
            raise ExecutionError("rejected")
        self.deleted.append(statement)


class _FakeGate:
    """Возвращает заранее заданные решения; после исчерпания — proceed."""

    def __init__(self, index: _FakeIndex, answers: list[bool] | None = None) -> None:
        self.index = index
        self.answers = list(answers or [])
        self.calls = 0

    def check(self, ceiling: int, *, waiting_for: str | None = None) -> GateDecision:
        self.calls += 1
        self.index.events.append("check")
        proceed = self.answers.pop(0) if self.answers else True
        return GateDecision(proceed=proceed)


def _scheduler(index, gate, *, out=None, sleeps=None, confirm=None, **cfg):
    config = CleanupConfig(patterns=("a.b.*", "c.*"), **cfg)
    planner = IndexQueryPlanner(config.index_table, config.effective_patterns, config.date_filter)
    return DeletionScheduler(
        config,
        planner,
        index,
        gate,
        out=(out if out is not None else (lambda _: None)),
        sleep=(sleeps.append if sleeps is not None else (lambda _: None)),
        confirm=confirm,
    )


def test_dry_run_prints_one_statement_per_date_and_never_gates() -> None:
    index = _FakeIndex([D1, D2], ["a.b.x", "c.y"])
    gate = _FakeGate(index)
    lines: list[str] = []
    report = _scheduler(index, gate, out=lines.append).run()

    assert report.state == SchedulerState.done
    assert index.deleted == []
    assert gate.calls == 0
    statements = [line for line in lines if line.startswith("ALTER TABLE")]
    assert len(statements) == 2
    for day, stmt in zip((D1, D2), statements):
        assert "(Path like 'a.b.*' OR Path like 'c.*') AND Date='" + day.isoformat() + "'" in stmt
        assert stmt.endswith("\n")
    assert lines[0] == "Check index"
    assert lines[1] == "Read 2 paths in 2 days: 2020-02-01 - 2020-02-02"


def test_execute_gates_before_every_delete_and_cools_down_between() -> None:
    index = _FakeIndex([D1, D2, D3], ["p"])
    gate = _FakeGate(index)
    sleeps: list[float] = []
    s = _scheduler(index, gate, sleeps=sleeps, execute=True)
    report = s.run()

    assert report.executed == 3
    assert index.events == ["check", "delete"] * 3
    # cooldown только между датами
    assert sleeps == [1.0, 1.0]
    assert s.history == [
        SchedulerState.init,
        SchedulerState.enumerate,
        SchedulerState.gate,
        SchedulerState.execute,
        SchedulerState.cooldown,
        SchedulerState.gate,
        SchedulerState.execute,
        SchedulerState.cooldown,
        SchedulerState.gate,
        SchedulerState.execute,
        SchedulerState.done,
    ]


def test_execute_waits_with_linear_backoff() -> None:
    index = _FakeIndex([D1], ["p"])
    gate = _FakeGate(index, answers=[False] * 7 + [True])
    sleeps: list[float] = []
    report = _scheduler(index, gate, sleeps=sleeps, execute=True).run()

    assert sleeps == [10, 20, 30, 40, 50, 60, 60]
    assert report.waits == 7
    assert gate.calls == 8
    assert len(index.deleted) == 1


def test_backoff_restarts_for_each_date() -> None:
    index = _FakeIndex([D1, D2], ["p"])
    gate = _FakeGate(index, answers=[False, False, True, False, True])
    sleeps: list[float] = []
    _scheduler(index, gate, sleeps=sleeps, execute=True).run()
    assert sleeps == [10, 20, 1.0, 10]


def test_no_paths_stops_before_monitor() -> None:
    index = _FakeIndex([D1], [])
    gate = _FakeGate(index)
    s = _scheduler(index, gate, execute=True)
    with pytest.raises(NoMatchError):
        s.run()
    assert s.state == SchedulerState.no_match
    assert gate.calls == 0
    assert index.deleted == []


def test_execution_failure_halts_and_keeps_deleted_dates() -> None:
    index = _FakeIndex([D1, D2, D3], ["p"], fail_on=D2)
    gate = _FakeGate(index)
    s = _scheduler(index, gate, execute=True)
    with pytest.raises(ExecutionError):
        s.run()
    assert s.state == SchedulerState.failed
    assert len(index.deleted) == 1
    assert index.deleted[0].endswith("Date='2020-02-01'")
    assert gate.calls == 2


def test_query_failure_is_fatal() -> None:
    index = _FakeIndex([D1], ["p"], fail_list=True)
    s = _scheduler(index, _FakeGate(index), execute=True)
    with pytest.raises(QueryError):
        s.run()
    assert s.state == SchedulerState.failed


def test_ask_declined_cancels() -> None:
    index = _FakeIndex([D1], ["p"])
    gate = _FakeGate(index)
    s = _scheduler(index, gate, ask=True, confirm=lambda: False)
    with pytest.raises(CancelledError):
        s.run()
    assert s.state == SchedulerState.cancelled
    assert gate.calls == 0


def test_ask_confirmed_switches_to_execute() -> None:
    index = _FakeIndex([D1, D2], ["p"])
    report = _scheduler(index, _FakeGate(index), ask=True, confirm=lambda: True).run()
    assert report.executed == 2
    assert len(index.deleted) == 2


def test_show_paths_prints_paths_first() -> None:
    index = _FakeIndex([D1], ["a.b.x", "c.y"])
    lines: list[str] = []
    _scheduler(index, _FakeGate(index), out=lines.append, show_paths=True).run()
    assert lines[:3] == ["Check index", "a.b.x", "c.y"]


def test_reversed_patterns_reach_delete_statement() -> None:
    index = _FakeIndex([D1], ["p"])
    report = _scheduler(index, _FakeGate(index), include_reversed=True).run()
    assert "Path like '*.b.a'" in report.statements[0]
    assert "Path like '*.c'" in report.statements[0]


def test_dates_summary_with_sentinel() -> None:
    sentinel = date(1970, 2, 12)
    assert format_dates_summary([sentinel, D1, D3]) == " 1970-02-12 2020-02-01 - 2020-02-03"
    assert format_dates_summary([D1]) == " 2020-02-01"
    assert format_dates_summary([D1, D2]) == " 2020-02-01 - 2020-02-02"
    assert format_dates_summary([]) == ""
