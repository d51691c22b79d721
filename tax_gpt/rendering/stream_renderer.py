"""
Incremental rendering of a streamed reply.
"""

import asyncio
from dataclasses import dataclass, field
from typing import AsyncIterable, Optional

from rich.cells import cell_len
from rich.console import Console
from rich.control import Control, ControlType
from rich.text import Text

from tax_gpt.utils import get_logger
from tax_gpt.utils.config import RenderConfig

from .formatter import format_line, render_markdown
from .theme import ICONS

logger = get_logger(__name__)

INDENT = "  "
TABLE_MARKER = "|"


@dataclass
class StreamState:
    """Per-reply rendering state."""
    full_text: str = ""
    partial_line: str = ""
    needs_rerender: bool = False
    # Plain text of every line written so far, used to count screen rows
    emitted: list[str] = field(default_factory=list)


class StreamRenderer:
    """
    Prints a reply line by line as deltas arrive.

    With in-place redraw (an interactive terminal) complete lines are shown
    immediately; if the finished reply contains a table, the lines already
    shown are erased and the whole reply is printed again with tables drawn.
    In append-only mode (redirected output) nothing can be erased, so the
    reply is printed once, fully rendered, when the stream ends.
    """

    def __init__(
        self,
        console: Console,
        config: RenderConfig = RenderConfig(),
        redraw: Optional[bool] = None,
        label: str = "Tax GPT",
    ):
        """
        Initialize the renderer.

        Args:
            console: Output sink
            config: Pacing and table options
            redraw: Force in-place redraw on or off; defaults to the
                config value, then to whether the console is a terminal
            label: Speaker label printed above the reply
        """
        self.console = console
        self.config = config
        if redraw is None:
            redraw = config.redraw if config.redraw is not None else console.is_terminal
        self.redraw = redraw
        self.label = label

    @property
    def delay(self) -> float:
        return self.config.stream_delay_ms / 1000

    def _print_line(self, line: Text, state: StreamState) -> None:
        self.console.print(Text(INDENT).append_text(line), style="agent", soft_wrap=True)
        state.emitted.append(INDENT + line.plain)

    def _print_header(self) -> None:
        self.console.print()
        self.console.print(Text(f"{INDENT}{ICONS['agent']} {self.label}", style="agent_label"))

    def feed(self, state: StreamState, delta: str) -> None:
        """Add a delta, printing any lines it completes."""
        state.full_text += delta
        state.partial_line += delta
        if "\n" not in state.partial_line:
            return

        *complete, state.partial_line = state.partial_line.split("\n")
        if self.redraw:
            for line in complete:
                self._print_line(format_line(line), state)

    def finish(self, state: StreamState) -> None:
        """Flush the last partial line and redraw tables if the reply has any."""
        if state.partial_line and self.redraw:
            self._print_line(format_line(state.partial_line), state)
        state.partial_line = ""
        state.needs_rerender = TABLE_MARKER in state.full_text

        if not self.redraw:
            for line in render_markdown(state.full_text, self.config.max_column_width):
                self._print_line(line, state)
            return

        if state.needs_rerender:
            self._erase(self._screen_rows(state.emitted))
            state.emitted.clear()
            for line in render_markdown(state.full_text, self.config.max_column_width):
                self._print_line(line, state)

    def _screen_rows(self, lines: list[str]) -> int:
        width = max(self.console.width, 1)
        return sum(max(1, -(-cell_len(line) // width)) for line in lines)

    def _erase(self, rows: int) -> None:
        """Move the cursor up over ``rows`` printed rows, clearing each one."""
        if rows <= 0:
            return
        codes = []
        for _ in range(rows):
            codes.append((ControlType.CURSOR_UP, 1))
            codes.append((ControlType.ERASE_IN_LINE, 2))
        self.console.control(Control(*codes))

    async def render(self, deltas: AsyncIterable[str]) -> str:
        """
        Render a streamed reply.

        Args:
            deltas: Incremental text fragments

        Returns:
            The full reply text
        """
        state = StreamState()
        self._print_header()
        if self.redraw:
            self.console.show_cursor(False)
        try:
            async for delta in deltas:
                if not delta:
                    continue
                self.feed(state, delta)
                if self.delay:
                    await asyncio.sleep(self.delay)
        finally:
            if self.redraw:
                self.console.show_cursor(True)

        self.finish(state)
        logger.debug(f"Rendered reply: {len(state.full_text)} chars, {len(state.emitted)} lines")
        return state.full_text
