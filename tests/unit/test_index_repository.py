from __future__ import annotations

from datetime import date, datetime

import pytest
from sqlalchemy.exc import OperationalError

from graphite_index_cleanup.common.errors import ExecutionError, QueryError
from graphite_index_cleanup.storage.index import IndexRepository
from graphite_index_cleanup.storage.mutations import MutationSource
from graphite_index_cleanup.storage.queries import IndexQueryPlanner


class _FakeResult:
    def __init__(self, rows) -> None:
        self._rows = rows

    def fetchall(self):
        return list(self._rows)


class _FakeConn:
    def __init__(self, rows=(), *, fail: bool = False) -> None:
        self.rows = rows
        self.fail = fail
        self.executed: list[tuple[str, dict | None]] = []

    def execute(self, stmt, params=None):
        self.executed.append((str(stmt), params))
        if self.fail:
            raise OperationalError(str(stmt), params, Exception("Code: 210. Connection refused"))
        return _FakeResult(self.rows)


def _planner() -> IndexQueryPlanner:
    return IndexQueryPlanner("graphite_index", ["a.*"])


def test_list_dates_normalizes_driver_values() -> None:
    conn = _FakeConn([(date(2020, 1, 1),), (datetime(2020, 1, 2, 0, 0),), ("2020-01-03",)])
    dates = IndexRepository(conn, _planner()).list_dates()
    assert dates == [date(2020, 1, 1), date(2020, 1, 2), date(2020, 1, 3)]
    assert conn.executed[0][0].startswith("SELECT Date FROM graphite_index")


def test_list_paths() -> None:
    conn = _FakeConn([("a.b",), ("a.c",)])
    assert IndexRepository(conn, _planner()).list_paths() == ["a.b", "a.c"]
    assert conn.executed[0][0].startswith("SELECT Path FROM graphite_index")


def test_query_failure_wrapped() -> None:
    with pytest.raises(QueryError) as exc:
        IndexRepository(_FakeConn(fail=True), _planner()).list_dates()
    assert "SELECT Date" in exc.value.details["query"]


def test_delete_failure_wrapped() -> None:
    with pytest.raises(ExecutionError) as exc:
        IndexRepository(_FakeConn(fail=True), _planner()).execute_delete("ALTER TABLE x DELETE WHERE 1")
    assert exc.value.details["statement"] == "ALTER TABLE x DELETE WHERE 1"


def test_mutations_query_uses_bound_parameters() -> None:
    created = datetime(2020, 3, 1, 10, 0, 0)
    conn = _FakeConn([("mutation_1.txt", created, 4, 0, "DELETE WHERE Date = '2020-02-01'")])
    mutations = MutationSource(conn).list_mutations(database="default", table="graphite_index")

    sql, params = conn.executed[0]
    assert "FROM system.mutations" in sql
    assert params == {"is_done": 0, "database": "default", "table": "graphite_index"}
    assert len(mutations) == 1
    m = mutations[0]
    assert m.mutation_id == "mutation_1.txt"
    assert m.parts_to_do == 4
    assert m.is_done is False
    assert m.target_date == "2020-02-01"


def test_mutations_query_failure_wrapped() -> None:
    with pytest.raises(QueryError):
        MutationSource(_FakeConn(fail=True)).list_mutations(database="default", table="t")
