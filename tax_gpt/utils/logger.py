"""
Logging configuration for Tax GPT.
Provides centralized logging with a rich console handler and an optional file handler.
"""

import logging
import re
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "tax_gpt"


class SensitiveDataFilter(logging.Filter):
    """
    Logging filter to mask sensitive data like SSNs and EINs.
    """
    
    SENSITIVE_PATTERNS = [
        # SSN pattern: XXX-XX-XXXX
        (re.compile(r"\b\d{3}-\d{2}-\d{4}\b"), "***-**-****"),
        # EIN pattern: XX-XXXXXXX
        (re.compile(r"\b\d{2}-\d{7}\b"), "**-*******"),
        # Account numbers (generic)
        (re.compile(r"\b\d{10,}\b"), "**********"),
    ]
    
    def filter(self, record: logging.LogRecord) -> bool:
        """Filter and mask sensitive data in log messages."""
        message = record.getMessage()
        for pattern, replacement in self.SENSITIVE_PATTERNS:
            message = pattern.sub(replacement, message)
        
        record.msg = message
        record.args = ()
        
        return True


def setup_logger(
    level: str = "WARNING",
    log_file: Optional[str | Path] = None,
    console: Optional[Console] = None,
) -> logging.Logger:
    """
    Set up and configure the package logger.
    
    Console output stays quiet by default so log records do not interleave
    with a streamed answer; the file handler always records DEBUG.
    
    Args:
        level: Console log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file
        console: Console the rich handler writes to (stderr if None)
    
    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    
    sensitive_filter = SensitiveDataFilter()
    
    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=True,
        show_path=True,
        markup=False,
        rich_tracebacks=True,
    )
    console_handler.setLevel(getattr(logging, level.upper()))
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    console_handler.addFilter(sensitive_filter)
    logger.addHandler(console_handler)
    
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
        ))
        file_handler.addFilter(sensitive_filter)
        logger.addHandler(file_handler)
    
    # Prevent propagation to root logger
    logger.propagate = False
    
    return logger


def get_logger(name: str = ROOT_LOGGER) -> logging.Logger:
    """
    Get a logger inside the package hierarchy.
    
    Module loggers are children of ``tax_gpt`` and inherit its handlers,
    so they work before and after ``setup_logger`` runs.
    
    Args:
        name: Logger name, usually ``__name__``
    
    Returns:
        Logger instance
    """
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)
