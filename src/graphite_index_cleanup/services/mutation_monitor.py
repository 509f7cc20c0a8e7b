"""
Монитор фоновых мутаций (backpressure gate).

Назначение:
- опрос system.mutations по целевой таблице
- решение: можно удалять (incomplete < ceiling) или надо ждать
- отчёт по незавершённым мутациям при ожидании

Монитор не считает попытки и не спит: это чистый gate, который
вызывающий переопрашивает после паузы LinearBackoff.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from graphite_index_cleanup.common.logging import get_project_logger
from graphite_index_cleanup.common.metrics import record_gate_state
from graphite_index_cleanup.common.time import format_timestamp
from graphite_index_cleanup.storage.mutations import Mutation

log = get_project_logger()


class MutationLister(Protocol):
    def list_mutations(
        self, *, database: str, table: str, is_done: bool = False
    ) -> list[Mutation]: ...


@dataclass(frozen=True)
class LinearBackoff:
    """
    10s, 20s, 30s, ... не больше 60s.
    """

    start_sec: float = 10.0
    step_sec: float = 10.0
    max_sec: float = 60.0

    def delay(self, attempt: int) -> float:
        return min(self.start_sec + self.step_sec * max(attempt, 0), self.max_sec)


@dataclass
class GateDecision:
    proceed: bool
    pending: list[Mutation] = field(default_factory=list)

    @property
    def pending_count(self) -> int:
        return len(self.pending)


def describe_mutation(mutation: Mutation) -> str:
    return (
        f"{mutation.mutation_id:<10s}  {format_timestamp(mutation.create_time)} "
        f"{mutation.target_date} parts {mutation.parts_to_do}"
    )


class MutationMonitor:
    def __init__(
        self,
        source: MutationLister,
        *,
        database: str,
        table: str,
        out: Callable[[str], None] = print,
    ) -> None:
        self.source = source
        self.database = database
        self.table = table
        self.out = out

    def check(self, ceiling: int, *, waiting_for: str | None = None) -> GateDecision:
        mutations = self.source.list_mutations(
            database=self.database, table=self.table, is_done=False
        )
        pending = [m for m in mutations if not m.is_done]
        proceed = len(pending) < ceiling
        record_gate_state(table=self.table, pending=len(pending), waiting=not proceed)

        decision = GateDecision(proceed=proceed, pending=pending)
        if not proceed:
            self._report(decision, ceiling, waiting_for)
        return decision

    def _report(self, decision: GateDecision, ceiling: int, waiting_for: str | None) -> None:
        log.warning(
            "merges_pending",
            extra={
                "payload": {
                    "table": self.table,
                    "pending": decision.pending_count,
                    "ceiling": ceiling,
                    "waiting_for": waiting_for,
                }
            },
        )
        header = "Wait for merges complete"
        if waiting_for:
            header += f" before delete {waiting_for}"
        self.out(f"\n{header}")
        for mutation in decision.pending:
            self.out(describe_mutation(mutation))
