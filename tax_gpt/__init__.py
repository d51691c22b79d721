"""Tax GPT - a terminal tax assistant grounded in IRS Publication 17."""

__version__ = "1.0.0"
