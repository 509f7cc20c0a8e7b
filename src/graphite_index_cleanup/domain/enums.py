"""
Доменные перечисления (enum).

Используются во всей системе:
- состояние scheduler-а удаления
- режим запуска
"""

from __future__ import annotations

import enum


class SchedulerState(str, enum.Enum):
    """
    Состояния прохода удаления по датам.
    """

    init = "init"
    enumerate = "enumerate"
    gate = "gate"
    execute = "execute"
    cooldown = "cooldown"
    done = "done"
    no_match = "no_match"
    cancelled = "cancelled"
    failed = "failed"


class RunMode(str, enum.Enum):
    """
    Режим запуска.
    """

    query = "query"  # только показать запрос, без подключения
    dry_run = "dry_run"  # показать ALTER TABLE ... DELETE, не выполнять
    execute = "execute"
