"""Terminal rendering for Tax GPT replies."""

from .formatter import ParsedTable, format_line, parse_table, render_markdown, render_table
from .stream_renderer import StreamRenderer, StreamState
from .theme import ICONS, TAX_GPT_THEME, create_console

__all__ = [
    "ParsedTable",
    "format_line",
    "parse_table",
    "render_markdown",
    "render_table",
    "StreamRenderer",
    "StreamState",
    "ICONS",
    "TAX_GPT_THEME",
    "create_console",
]
