"""
Shared fixtures for the Tax GPT test suite.
"""

import io
from pathlib import Path
from typing import AsyncIterator, Iterable

import pytest

from tax_gpt.rendering import create_console
from tax_gpt.storage import SessionStore
from tax_gpt.utils.config import LoggingConfig, PathsConfig, RenderConfig, Settings

KNOWLEDGE_BASE_TEXT = """Filing Requirements

You must file a return if your gross income is at least the amount shown in Table 1-1.

Standard Deduction

The standard deduction for single filers is $15,750 for 2025.

Earned Income Credit

The earned income credit can reduce your tax to zero. Income limits apply."""


class FakePrompter:
    """Replays scripted answers instead of reading the keyboard."""

    def __init__(self, answers: Iterable[str] = (), choices: Iterable[int] = ()):
        self.answers = list(answers)
        self.choices = list(choices)
        self.asked: list[str] = []

    def ask(self, message: str = "", choices=None, default=None) -> str:
        self.asked.append(message)
        return self.answers.pop(0)

    def choose(self, message: str, options) -> str:
        self.asked.append(message)
        index = self.choices.pop(0) if self.choices else 0
        return options[index]


async def stream_of(deltas: Iterable[str]) -> AsyncIterator[str]:
    for delta in deltas:
        yield delta


class FakeCompletionClient:
    """Stands in for CompletionClient, replying with canned deltas."""

    def __init__(self, replies: Iterable[Iterable[str]] = (), error: Exception = None):
        self.replies = [list(r) for r in replies]
        self.error = error
        self.requests: list[list[dict]] = []

    async def stream_chat(self, messages):
        self.requests.append(messages)
        if self.error is not None:
            raise self.error
        deltas = self.replies.pop(0) if self.replies else ["OK"]
        return stream_of(deltas)


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def console(output):
    """Plain terminal console writing into a buffer."""
    return create_console(file=output, force_terminal=True, color_system=None, width=100)


@pytest.fixture
def knowledge_base_file(tmp_path) -> Path:
    path = tmp_path / "tax-knowledge-base.txt"
    path.write_text(KNOWLEDGE_BASE_TEXT, encoding="utf-8")
    return path


@pytest.fixture
def settings(tmp_path, knowledge_base_file) -> Settings:
    return Settings(
        paths=PathsConfig(config_dir=tmp_path / "home", knowledge_base=knowledge_base_file),
        render=RenderConfig(stream_delay_ms=0),
        logging=LoggingConfig(to_file=False),
    )


@pytest.fixture
def store(tmp_path):
    session_store = SessionStore(tmp_path / "sessions", model="test-model")
    yield session_store
    session_store.close()


@pytest.fixture
def prompter():
    return FakePrompter()
