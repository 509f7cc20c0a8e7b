"""
Единые ошибки и коды ошибок.

Назначение:
- предсказуемые коды для CLI (сообщение + exit code)
- единый стиль исключений по проекту

Все ошибки фатальны: повторов нет, уже выполненные удаления не откатываются.
"""

from __future__ import annotations

from dataclasses import dataclass


class ErrCode:
    # Общие
    UNKNOWN = "unknown"
    CONFIGURATION = "configuration"
    CANCELLED = "cancelled"

    # ClickHouse
    QUERY = "query_error"
    NO_MATCH = "no_match"
    EXECUTION = "execution_error"


@dataclass
class AppError(Exception):
    """
    Базовая ошибка приложения.
    - code: стабильный код ошибки
    - message: сообщение для оператора
    - details: доп. данные (запрос, токен фильтра и т.п.)
    """

    code: str
    message: str
    details: dict | None = None

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class ConfigurationError(AppError):
    """
    Пустой/отсутствующий список паттернов, неверный токен фильтра дат,
    неверное имя таблицы. Возникает до построения любого запроса.
    """

    def __init__(self, message: str = "Ошибка конфигурации", details: dict | None = None) -> None:
        super().__init__(ErrCode.CONFIGURATION, message, details)


class QueryError(AppError):
    def __init__(self, message: str = "Ошибка запроса", details: dict | None = None) -> None:
        super().__init__(ErrCode.QUERY, message, details)


class NoMatchError(AppError):
    """
    Ни один путь не попал под паттерны. Это защитная остановка,
    а не "нечего чистить".
    """

    def __init__(self, message: str = "No path found", details: dict | None = None) -> None:
        super().__init__(ErrCode.NO_MATCH, message, details)


class ExecutionError(AppError):
    def __init__(self, message: str = "Ошибка удаления", details: dict | None = None) -> None:
        super().__init__(ErrCode.EXECUTION, message, details)


class CancelledError(AppError):
    def __init__(self, message: str = "Canceled", details: dict | None = None) -> None:
        super().__init__(ErrCode.CANCELLED, message, details)
