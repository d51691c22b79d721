"""Terminal colour scheme and glyphs."""

from rich.console import Console
from rich.theme import Theme

TAX_GPT_THEME = Theme({
    "user": "#FF9500",
    "agent": "#FFFFFF",
    "agent_label": "#007AFF",
    "system": "#8E8E93",
    "dim": "#636366",
    "border": "#48484A",
    "highlight": "#34C759",
    "error": "#FF3B30",
    "warning": "#FFCC00",
})

ICONS = {
    "user": "❯",
    "agent": "●",
    "system": "•",
    "arrow": "→",
    "check": "✓",
    "dot": "·",
}


def create_console(**kwargs) -> Console:
    """Console with the Tax GPT theme applied."""
    return Console(theme=TAX_GPT_THEME, highlight=False, **kwargs)
