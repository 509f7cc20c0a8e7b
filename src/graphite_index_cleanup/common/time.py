"""
Утилиты времени.

Назначение:
- единый текстовый формат дня индекса (YYYY-MM-DD)
- формат времени создания мутации для отчёта
"""

from __future__ import annotations

from datetime import date, datetime

DAY_FORMAT = "%Y-%m-%d"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_day(day: date) -> str:
    """
    date -> 'YYYY-MM-DD'
    """
    return f"{day.year:04d}-{day.month:02d}-{day.day:02d}"


def parse_day(value: str) -> date:
    """
    'YYYY-MM-DD' -> date. ValueError для несуществующих дат.
    """
    return datetime.strptime(value, DAY_FORMAT).date()


def as_day(value: date | datetime | str) -> date:
    """
    Приводит значение колонки Date (драйвер может вернуть date, datetime или str) к date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_day(str(value).strip())


def format_timestamp(value: datetime | str) -> str:
    if isinstance(value, datetime):
        return value.strftime(TIMESTAMP_FORMAT)
    return str(value)
