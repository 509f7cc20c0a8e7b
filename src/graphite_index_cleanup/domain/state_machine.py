"""
Машина состояний прохода удаления.

Назначение:
- централизованное управление переходами
- предсказуемое поведение при ошибках (failed терминально)

    init → enumerate → (gate → execute → cooldown)* → done
    enumerate → no_match | cancelled
"""

from __future__ import annotations

from dataclasses import dataclass

from .enums import SchedulerState

S = SchedulerState


# =============================================================================
# РЕЗУЛЬТАТ ПЕРЕХОДА
# =============================================================================
@dataclass
class TransitionResult:
    ok: bool
    state: SchedulerState
    reason: str | None = None


# =============================================================================
# ДОПУСТИМЫЕ ПЕРЕХОДЫ
# =============================================================================
_ALLOWED: dict[SchedulerState, frozenset[SchedulerState]] = {
    S.init: frozenset({S.enumerate}),
    # dry-run печатает план и сразу завершается, минуя gate
    S.enumerate: frozenset({S.gate, S.done, S.no_match, S.cancelled}),
    # gate → gate: повторный опрос после ожидания
    S.gate: frozenset({S.gate, S.execute}),
    S.execute: frozenset({S.cooldown, S.done}),
    S.cooldown: frozenset({S.gate}),
    S.done: frozenset(),
    S.no_match: frozenset(),
    S.cancelled: frozenset(),
    S.failed: frozenset(),
}

TERMINAL_STATES = frozenset({S.done, S.no_match, S.cancelled, S.failed})


def is_terminal(state: SchedulerState) -> bool:
    return state in TERMINAL_STATES


# =============================================================================
# ПЕРЕХОД СОСТОЯНИЙ
# =============================================================================
def transition(current: SchedulerState, target: SchedulerState) -> TransitionResult:
    """
    Правила перехода:
    - failed достижим из любого нетерминального состояния
    - из терминальных состояний переходов нет
    - остальное по таблице _ALLOWED
    """
    if is_terminal(current):
        return TransitionResult(ok=False, state=current, reason="terminal_state")

    if target == S.failed:
        return TransitionResult(ok=True, state=S.failed)

    if target not in _ALLOWED[current]:
        return TransitionResult(
            ok=False,
            state=current,
            reason=f"illegal_transition:{current.value}->{target.value}",
        )

    return TransitionResult(ok=True, state=target)
