"""
Formatting of assistant replies for the terminal.

Only a small fixed set of markdown-like constructs is handled: dollar
amounts, percentages, **bold**, _italic_, "* " bullets, "##"/"###"
headers and pipe tables. Styling is carried as rich ``Text`` spans, so
truncating a formatted table cell never cuts through a style.
"""

import re
from typing import NamedTuple, Optional, Sequence

from rich.text import Text

CURRENCY_PATTERN = re.compile(r"\$[\d,]+")
PERCENT_PATTERN = re.compile(r"\d+%")
BOLD_PATTERN = re.compile(r"\*\*(.+?)\*\*")
ITALIC_PATTERN = re.compile(r"_(.+?)_")
BULLET_PATTERN = re.compile(r"^\*\s")
H3_PATTERN = re.compile(r"^### ")
H2_PATTERN = re.compile(r"^## ")
SEPARATOR_CELL_PATTERN = re.compile(r"^[-:]+$")

BULLET_GLYPH = "• "
MIN_TABLE_LINES = 2
MIN_TABLE_ROWS = 2


def _highlight(text: Text, pattern: re.Pattern, style: str) -> None:
    for match in pattern.finditer(text.plain):
        text.stylize(style, match.start(), match.end())


def _unwrap(text: Text, pattern: re.Pattern, style: str) -> Text:
    """Replace each match with its first group, styled, keeping existing spans."""
    result = Text()
    cursor = 0
    for match in pattern.finditer(text.plain):
        result.append_text(text[cursor:match.start()])
        inner = text[match.start(1):match.end(1)]
        inner.stylize(style)
        result.append_text(inner)
        cursor = match.end()
    if cursor == 0:
        return text
    result.append_text(text[cursor:])
    return result


def _replace_prefix(text: Text, length: int, prefix: Text) -> Text:
    result = prefix.copy()
    result.append_text(text[length:])
    return result


def format_line(line: str) -> Text:
    """
    Format a single line of a reply.

    Steps run in a fixed order: currency, percentages, bold, italic,
    bullet, then headers.
    """
    text = Text(line)
    _highlight(text, CURRENCY_PATTERN, "highlight")
    _highlight(text, PERCENT_PATTERN, "highlight")
    text = _unwrap(text, BOLD_PATTERN, "bold")
    text = _unwrap(text, ITALIC_PATTERN, "italic")

    if BULLET_PATTERN.match(text.plain):
        text = _replace_prefix(text, 2, Text.assemble((BULLET_GLYPH, "dim"), " "))

    if H3_PATTERN.match(text.plain):
        text = text[4:]
        text.stylize("bold underline")
    elif H2_PATTERN.match(text.plain):
        text = text[3:]
        text.stylize("bold")

    return text


class ParsedTable(NamedTuple):
    """A pipe table split into header and body cells."""
    header: list[str]
    rows: list[list[str]]


def split_row(line: str) -> list[str]:
    """Split a pipe row into trimmed cells, dropping empty edge cells."""
    cells = [cell.strip() for cell in line.strip().split("|")]
    if cells and cells[0] == "":
        cells = cells[1:]
    if cells and cells[-1] == "":
        cells = cells[:-1]
    return cells


def is_separator_row(cells: Sequence[str]) -> bool:
    """True for the |---|:---:| row between header and body."""
    return bool(cells) and all(SEPARATOR_CELL_PATTERN.match(cell) for cell in cells)


def is_table_line(line: str) -> bool:
    return line.strip().startswith("|")


def parse_table(lines: Sequence[str]) -> Optional[ParsedTable]:
    """
    Parse a block of pipe lines.

    Returns:
        ParsedTable, or None when the block is too short to be a table
        or its header row has no text
    """
    if len(lines) < MIN_TABLE_LINES:
        return None

    rows = [split_row(line) for line in lines]
    rows = [row for row in rows if not is_separator_row(row)]
    if len(rows) < MIN_TABLE_ROWS or not any(rows[0]):
        return None

    return ParsedTable(header=rows[0], rows=rows[1:])


def column_widths(cells: Sequence[Sequence[Text]], max_width: int = 35) -> list[int]:
    """Column width: longest cell plus two spaces of padding, capped at ``max_width``."""
    count = max(len(row) for row in cells)
    widths = []
    for col in range(count):
        longest = max((row[col].cell_len for row in cells if col < len(row)), default=0)
        widths.append(min(longest + 2, max_width))
    return widths


def _fit(cell: Text, width: int) -> Text:
    fitted = cell.copy()
    fitted.truncate(width, overflow="ellipsis", pad=True)
    return fitted


def _border(left: str, middle: str, right: str, widths: Sequence[int]) -> Text:
    return Text(left + middle.join("─" * w for w in widths) + right, style="border")


def _row(cells: Sequence[Text], widths: Sequence[int], header: bool = False) -> Text:
    line = Text("│", style="border")
    for col, width in enumerate(widths):
        cell = cells[col] if col < len(cells) else Text("")
        content = _fit(cell, max(width - 2, 0))
        if header:
            content.stylize("bold")
        line.append(" ")
        line.append_text(content)
        line.append(" ")
        line.append("│", style="border")
    return line


def render_table(table: ParsedTable, max_column_width: int = 35) -> list[Text]:
    """Draw a parsed table with box-drawing borders and a bold header row."""
    header = [format_line(cell) for cell in table.header]
    rows = [[format_line(cell) for cell in row] for row in table.rows]
    widths = column_widths([header, *rows], max_column_width)

    lines = [_border("┌", "┬", "┐", widths), _row(header, widths, header=True)]
    lines.append(_border("├", "┼", "┤", widths))
    lines.extend(_row(row, widths) for row in rows)
    lines.append(_border("└", "┴", "┘", widths))
    return lines


def render_markdown(text: str, max_column_width: int = 35) -> list[Text]:
    """
    Render a complete reply, drawing pipe tables as boxed tables.

    Runs of at least two lines starting with "|" are parsed as tables;
    runs that do not parse fall back to per-line formatting.
    """
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()

    rendered: list[Text] = []
    i = 0
    while i < len(lines):
        if not is_table_line(lines[i]):
            rendered.append(format_line(lines[i]))
            i += 1
            continue

        j = i
        while j < len(lines) and is_table_line(lines[j]):
            j += 1
        block = lines[i:j]

        table = parse_table(block)
        if table is not None:
            rendered.extend(render_table(table, max_column_width))
        else:
            rendered.extend(format_line(line) for line in block)
        i = j

    return rendered
