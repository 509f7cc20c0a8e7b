"""
Паттерны путей Graphite и построение предиката по ним.

Назначение:
- валидация паттернов (набор символов, неоднозначные '%' и '?')
- зеркальные ("reversed") паттерны для старых reverse-индексов
- рендер WHERE-фрагмента `(Path like '...' OR ...) [AND Date='YYYY-MM-DD']`
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date
from pathlib import Path

from graphite_index_cleanup.common.errors import ConfigurationError
from graphite_index_cleanup.common.time import format_day

# '*' не запрещён: это wildcard graphite-глобов
FORBIDDEN_CHARS = "~!@#$^&() '\""
AMBIGUOUS_PATTERNS = frozenset({"%", "?"})


def quote_literal(value: str) -> str:
    """
    Строковый литерал ClickHouse: экранируем обратный слэш и кавычку.
    """
    escaped = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def validate_pattern(raw: str) -> str:
    pattern = raw.strip(" ")
    if pattern in AMBIGUOUS_PATTERNS:
        raise ConfigurationError(
            f"check glob in {pattern}", details={"pattern": pattern}
        )
    bad = [ch for ch in pattern if ch in FORBIDDEN_CHARS]
    if bad:
        raise ConfigurationError(
            f"invalid symbol in glob {pattern}",
            details={"pattern": pattern, "symbol": bad[0]},
        )
    return pattern


def parse_patterns(lines: Iterable[str]) -> list[str]:
    """
    Пустые строки пропускаются, остальные валидируются.
    Пустой итоговый список считается ошибкой конфигурации.
    """
    patterns: list[str] = []
    for line in lines:
        line = line.rstrip("\r\n")
        if not line.strip(" "):
            continue
        patterns.append(validate_pattern(line))
    if not patterns:
        raise ConfigurationError("empty glob list")
    return patterns


def load_patterns(path: str | Path | None) -> list[str]:
    if not path:
        raise ConfigurationError("glob file path not set")
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(
            f"can't read glob file {path}: {e}", details={"path": str(path)}
        ) from e
    return parse_patterns(text.splitlines())


def reverse_path(path: str) -> str:
    return ".".join(reversed(path.split(".")))


def with_reversed(patterns: Iterable[str]) -> list[str]:
    """
    [p1, rev(p1), p2, rev(p2), ...]: дополняет набор, не заменяет его.
    """
    out: list[str] = []
    for pattern in patterns:
        out.append(pattern)
        out.append(reverse_path(pattern))
    return out


def build_filter(patterns: Sequence[str], day: date | None = None) -> str:
    """
    Предикат по паттернам и (опционально) одной дате.

    ""  (нет ни паттернов, ни даты)
    "WHERE (Path like 'a' OR Path like 'b')"
    "WHERE (Path like 'a') AND Date='2020-02-01'"
    """
    if not patterns and day is None:
        return ""

    parts: list[str] = []
    if patterns:
        likes = " OR ".join(f"Path like {quote_literal(p)}" for p in patterns)
        parts.append(f"({likes})")
    if day is not None:
        parts.append(f"Date={quote_literal(format_day(day))}")
    return "WHERE " + " AND ".join(parts)
