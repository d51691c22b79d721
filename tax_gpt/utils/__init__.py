"""Utility modules for Tax GPT."""

from .logger import setup_logger, get_logger
from .file_utils import ensure_dir, safe_filename, text_stats

__all__ = ["setup_logger", "get_logger", "ensure_dir", "safe_filename", "text_stats"]
