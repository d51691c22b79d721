"""
File handling utilities for Tax GPT.
"""

import re
from pathlib import Path

_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def ensure_dir(path: str | Path) -> Path:
    """
    Ensure a directory exists, creating it and its parents if necessary.
    
    Args:
        path: Directory path
    
    Returns:
        Path object for the directory
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def safe_filename(name: str) -> str:
    """
    Turn a user-supplied name into a plain filename stem.
    
    Args:
        name: Name typed by the user
    
    Returns:
        Name with path separators and control characters replaced by '-'
    """
    cleaned = _UNSAFE_FILENAME_CHARS.sub("-", name.strip())
    return cleaned.strip(". ") or "session"


def text_stats(text: str) -> dict[str, int]:
    """Count characters, lines and words the way the stats report shows them."""
    return {
        "characters": len(text),
        "lines": len(text.split("\n")),
        "words": len(re.split(r"\s+", text)),
    }
