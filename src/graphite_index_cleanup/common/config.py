"""
Централизованная конфигурация проекта (ENV / .env).

Важно:
- настройки читаются из .env и переменных окружения
- типизированные значения через pydantic-settings
- параметры одного запуска собираются в неизменяемый CleanupConfig
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from graphite_index_cleanup.filters.date_filter import DateFilter
from graphite_index_cleanup.filters.patterns import with_reversed


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -------------------------------------------------------------------------
    # ClickHouse
    # -------------------------------------------------------------------------
    clickhouse_dsn: str = Field(
        default="clickhouse+native://127.0.0.1:9000/default",
        alias="CLICKHOUSE_DSN",
    )
    clickhouse_database: str = Field(default="default", alias="CLICKHOUSE_DATABASE")
    index_table: str = Field(default="graphite_index", alias="INDEX_TABLE")

    # -------------------------------------------------------------------------
    # Backpressure
    # -------------------------------------------------------------------------
    max_merges: int = Field(default=1, alias="MAX_MERGES")
    merge_wait_start_sec: float = Field(default=10.0, alias="MERGE_WAIT_START_SEC")
    merge_wait_step_sec: float = Field(default=10.0, alias="MERGE_WAIT_STEP_SEC")
    merge_wait_max_sec: float = Field(default=60.0, alias="MERGE_WAIT_MAX_SEC")
    delete_cooldown_sec: float = Field(default=1.0, alias="DELETE_COOLDOWN_SEC")

    # -------------------------------------------------------------------------
    # Observability
    # -------------------------------------------------------------------------
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="text", alias="LOG_FORMAT")  # json|text
    metrics_textfile: str | None = Field(default=None, alias="METRICS_TEXTFILE")


@dataclass(frozen=True)
class CleanupConfig:
    """
    Параметры одного запуска очистки.

    Собирается один раз (CLI + Settings) и явно передаётся в планировщик,
    монитор мутаций и scheduler. Глобального изменяемого состояния нет.
    """

    patterns: tuple[str, ...]
    index_table: str = "graphite_index"
    database: str = "default"
    date_filter: DateFilter | None = None
    include_reversed: bool = False

    # режимы
    execute: bool = False
    show_paths: bool = False
    ask: bool = False

    # backpressure
    max_merges: int = 1
    wait_start_sec: float = 10.0
    wait_step_sec: float = 10.0
    wait_max_sec: float = 60.0
    cooldown_sec: float = 1.0

    @property
    def effective_patterns(self) -> list[str]:
        if self.include_reversed:
            return with_reversed(self.patterns)
        return list(self.patterns)


def build_cleanup_config(
    settings: Settings,
    *,
    patterns: list[str] | tuple[str, ...],
    date_filter: DateFilter | None = None,
    index_table: str | None = None,
    database: str | None = None,
    max_merges: int | None = None,
    include_reversed: bool = False,
    execute: bool = False,
    show_paths: bool = False,
    ask: bool = False,
) -> CleanupConfig:
    return CleanupConfig(
        patterns=tuple(patterns),
        index_table=index_table or settings.index_table,
        database=database or settings.clickhouse_database,
        date_filter=date_filter,
        include_reversed=include_reversed,
        execute=execute,
        show_paths=show_paths,
        ask=ask,
        max_merges=settings.max_merges if max_merges is None else max_merges,
        wait_start_sec=settings.merge_wait_start_sec,
        wait_step_sec=settings.merge_wait_step_sec,
        wait_max_sec=settings.merge_wait_max_sec,
        cooldown_sec=settings.delete_cooldown_sec,
    )


def _normalize_file_value(raw: str) -> str:
    # DSN и имя таблицы занимают одну строку; лишние переводы строк из секретов убираем
    return raw.strip()


def _apply_file_overrides(settings: Settings) -> None:
    alias_to_field = {}
    for name, field in type(settings).model_fields.items():
        alias = field.alias or name
        alias_to_field[str(alias)] = name
        alias_to_field[str(name)] = name

    for key, path in os.environ.items():
        if not key.endswith("_FILE"):
            continue
        base = key[: -len("_FILE")]
        target = alias_to_field.get(base)
        if not target:
            continue
        file_path = (path or "").strip()
        if not file_path:
            continue
        try:
            raw = Path(file_path).read_text(encoding="utf-8")
        except Exception as e:
            logging.getLogger("graphite-index-cleanup").error(
                "config_file_read_failed",
                extra={"payload": {"env_key": key, "path": file_path, "error": str(e)[:200]}},
            )
            raise RuntimeError(f"Failed to read {key} from {file_path}") from e
        setattr(settings, target, _normalize_file_value(raw))


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        settings = Settings()
        _apply_file_overrides(settings)
        _SETTINGS = settings
    return _SETTINGS
