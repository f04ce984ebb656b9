"""Markup rendering for log messages.

Rendering is strictly ordered: escape the raw text, then add semantic
highlights, then add search highlights. Each highlighting pass only touches
text between existing tags and never splits an escaped entity.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from datetime import tzinfo

from ..models import OUTPUT_KINDS, EntryKind, LogEntry

ERROR_CLASS = "log-highlight-error"
SUCCESS_CLASS = "log-highlight-success"
IP_CLASS = "log-highlight-ip"
TIMESTAMP_CLASS = "log-highlight-timestamp"
SEARCH_CLASS = "log-search-highlight"

# Messages longer than this (or multi-line) render collapsed.
EXPAND_THRESHOLD = 150

_MARKUP = r"<[^>]*>|&(?:#\d+|#[xX][0-9a-fA-F]+|[a-zA-Z]+);"

_SEMANTIC_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\b(?:error|failed|exception|warning|warn|critical)\b", re.I), ERROR_CLASS),
    (re.compile(r"\b(?:success|completed|started|listening on|ready)\b", re.I), SUCCESS_CLASS),
    (re.compile(r"\b\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}(?::\d+)?\b"), IP_CLASS),
    (
        re.compile(
            r"\b\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}:\d{2}(?:[.,]\d{3})?(?:Z|[+-]\d{2}:?\d{2})?\b"
        ),
        TIMESTAMP_CLASS,
    ),
)

_LABELS: dict[EntryKind, tuple[str, str]] = {
    EntryKind.SYSTEM: ("SYSTEM:", "log-system"),
    EntryKind.ERROR: ("ERROR:", "log-error"),
    EntryKind.STREAM_STARTED: ("STARTED:", "log-success"),
    EntryKind.STREAM_STOPPED: ("STOPPED:", "log-info"),
    EntryKind.LOG_LINE: ("", "log-line"),
    EntryKind.LOG_STDERR: ("STDERR:", "log-stderr"),
}


def escape_markup(text: str) -> str:
    """Stage 1: escape every markup-significant character."""
    return html.escape(text or "", quote=True)


def _outside_markup(rx: re.Pattern[str]) -> re.Pattern[str]:
    """Pair a pattern with a markup matcher so tags and entities are skipped whole."""
    return re.compile(f"(?P<hit>{rx.pattern})|(?P<skip>{_MARKUP})", rx.flags)


_SEMANTIC_PASSES = tuple((_outside_markup(rx), css_class) for rx, css_class in _SEMANTIC_RULES)


def _wrap_hits(rx: re.Pattern[str], css_class: str, markup: str) -> str:
    def repl(m: re.Match[str]) -> str:
        if m.group("hit") is None:
            return m.group(0)
        return f'<span class="{css_class}">{m.group("hit")}</span>'

    return rx.sub(repl, markup)


def highlight_content(markup: str) -> str:
    """Stage 2: wrap severity, success, IPv4[:port] and timestamp matches."""
    for rx, css_class in _SEMANTIC_PASSES:
        markup = _wrap_hits(rx, css_class, markup)
    return markup


def highlight_search_terms(markup: str, filter_text: str) -> str:
    """Stage 3: wrap case-insensitive occurrences of the active filter text."""
    if not filter_text or not markup:
        return markup
    needle = re.compile(re.escape(escape_markup(filter_text)), re.I)
    return _wrap_hits(_outside_markup(needle), SEARCH_CLASS, markup)


def render_message(message: str, filter_text: str = "") -> str:
    """Run the full escape -> highlight -> search-highlight pipeline."""
    return highlight_search_terms(highlight_content(escape_markup(message)), filter_text)


@dataclass(frozen=True, slots=True)
class RenderedEntry:
    """Display-ready form of a log entry."""

    kind: EntryKind
    label: str
    css_class: str
    time: str
    markup: str
    expandable: bool


def format_time(entry: LogEntry, tz: tzinfo | None = None) -> str:
    if entry.timestamp is None:
        return "--:--:--"
    return entry.timestamp.astimezone(tz).strftime("%H:%M:%S")


def is_expandable(message: str) -> bool:
    return len(message) > EXPAND_THRESHOLD or "\n" in message


def render_entry(entry: LogEntry, filter_text: str = "", *, tz: tzinfo | None = None) -> RenderedEntry:
    """Render one entry; container output gets full highlighting, the rest is escaped."""
    label, css_class = _LABELS[entry.kind]
    if entry.kind in OUTPUT_KINDS:
        markup = render_message(entry.message, filter_text)
    else:
        markup = escape_markup(entry.message)
    return RenderedEntry(
        kind=entry.kind,
        label=label,
        css_class=css_class,
        time=format_time(entry, tz),
        markup=markup,
        expandable=is_expandable(entry.message),
    )


def format_plain(entry: LogEntry, *, tz: tzinfo | None = None) -> str:
    """One-line plain-text form used by terminal and text outputs."""
    label, _ = _LABELS[entry.kind]
    prefix = f"[{format_time(entry, tz)}]"
    if label:
        return f"{prefix} {label} {entry.message}"
    return f"{prefix} {entry.message}"
