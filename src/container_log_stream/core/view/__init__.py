"""Derived views over the log buffer: filtering, highlighting, summaries."""

from __future__ import annotations

from .filtering import filter_entries, matches_level, parse_level
from .highlight import (
    RenderedEntry,
    escape_markup,
    format_plain,
    highlight_content,
    highlight_search_terms,
    render_entry,
    render_message,
)
from .summary import StreamSummary, empty_state_message, summarize

__all__ = [
    "RenderedEntry",
    "StreamSummary",
    "empty_state_message",
    "escape_markup",
    "filter_entries",
    "format_plain",
    "highlight_content",
    "highlight_search_terms",
    "matches_level",
    "parse_level",
    "render_entry",
    "render_message",
    "summarize",
]
