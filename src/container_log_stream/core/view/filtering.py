"""Level and text filtering over buffer snapshots."""

from __future__ import annotations

from collections.abc import Iterable

from ..models import EntryKind, LevelFilter, LogEntry

_LEVEL_KINDS: dict[LevelFilter, frozenset[EntryKind]] = {
    LevelFilter.ERROR: frozenset({EntryKind.ERROR, EntryKind.LOG_STDERR}),
    LevelFilter.SYSTEM: frozenset({EntryKind.SYSTEM}),
    LevelFilter.SUCCESS: frozenset({EntryKind.STREAM_STARTED}),
}


def parse_level(value: LevelFilter | str | None) -> LevelFilter:
    """Coerce a user-supplied level name (case-insensitive) to a LevelFilter."""
    if value is None or value == "":
        return LevelFilter.ALL
    if isinstance(value, LevelFilter):
        return value
    try:
        return LevelFilter(value.strip().lower())
    except ValueError as e:
        valid = ", ".join(lvl.value for lvl in LevelFilter)
        raise ValueError(f"Unknown level '{value}'. Valid values: {valid}.") from e


def matches_level(entry: LogEntry, level: LevelFilter) -> bool:
    if level is LevelFilter.ALL:
        return True
    return entry.kind in _LEVEL_KINDS[level]


def filter_entries(
    entries: Iterable[LogEntry],
    *,
    text: str = "",
    level: LevelFilter | str = LevelFilter.ALL,
) -> list[LogEntry]:
    """Return the entries matching the level and (case-insensitive) text filter."""
    lvl = parse_level(level)
    needle = text.lower() if text else ""
    return [
        e
        for e in entries
        if matches_level(e, lvl) and (not needle or needle in e.message.lower())
    ]
