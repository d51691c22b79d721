"""Tests for slash commands."""

import pytest
from rich.prompt import Prompt

from tax_gpt.assistant import CommandHandler, ExitRequested, Prompter
from tax_gpt.storage import Role

from .conftest import FakePrompter


@pytest.fixture
def handler(store, console, prompter, tmp_path):
    store.init()
    store.create("current")
    return CommandHandler(store, console, prompter, export_dir=tmp_path)


def test_plain_text_is_not_a_command(handler):
    assert handler.handle("what is my deduction?") is False


def test_unknown_command(handler, output):
    assert handler.handle("/bogus") is True

    text = output.getvalue()
    assert "Unknown command: /bogus" in text
    assert "Type /help for commands" in text


@pytest.mark.parametrize("command", ["/quit", "/exit", " /QUIT "])
def test_quit_requests_exit(handler, command):
    with pytest.raises(ExitRequested):
        handler.handle(command)


def test_help_lists_commands(handler, output):
    handler.handle("/help")

    for command in ("/new", "/sessions", "/switch", "/clear", "/history", "/export", "/delete", "/quit"):
        assert command in output.getvalue()


def test_new_session_with_name(handler, store):
    handler.prompter.answers = ["filing 2025"]

    handler.handle("/new")

    assert store.current.id == "filing 2025"
    assert "filing 2025" in store.list_sessions()


def test_new_session_without_name(handler, store):
    handler.prompter.answers = [""]

    handler.handle("/new")

    assert store.current.id.startswith("session-")


def test_list_sessions_marks_current(handler, store, output):
    store.create("older")
    store.load("current")

    handler.handle("/sessions")

    text = output.getvalue()
    assert "✓ current" in text
    assert "older" in text


def test_switch_session(handler, store, output):
    store.create("other")
    store.load("current")
    handler.prompter = FakePrompter(choices=[0])

    handler.handle("/switch")

    assert store.current.id == "other"
    assert "Switched to: other" in output.getvalue()


def test_switch_with_no_other_sessions(handler, store, output):
    handler.handle("/switch")

    assert store.current.id == "current"
    assert "No sessions to switch to" in output.getvalue()


def test_clear_history(handler, store, output):
    store.append_message(Role.USER, "question")

    handler.handle("/clear")

    assert store.current.messages == []
    assert "History cleared" in output.getvalue()


def test_show_history_previews_messages(handler, store, output):
    store.append_message(Role.USER, "q" * 80)
    store.append_message(Role.ASSISTANT, "short answer")

    handler.handle("/history")

    text = output.getvalue()
    assert "q" * 60 + "..." in text
    assert "q" * 61 not in text
    assert "short answer" in text


def test_show_empty_history(handler, output):
    handler.handle("/history")

    assert "No history in current session" in output.getvalue()


def test_export(handler, store, tmp_path, output):
    store.append_message(Role.USER, "Q1")
    store.append_message(Role.ASSISTANT, "A1")

    handler.handle("/export")

    exported = tmp_path / "current.md"
    assert exported.read_text() == "# current\n\n## Q\n\nQ1\n\n---\n\n## A\n\nA1\n"
    assert "Exported:" in output.getvalue()


def test_delete_other_session(handler, store, output):
    store.create("doomed")
    store.load("current")
    handler.prompter = FakePrompter(choices=[0])

    handler.handle("/delete")

    assert store.list_sessions() == ["current"]
    assert "Deleted: doomed" in output.getvalue()


def test_current_session_cannot_be_deleted(handler, store, output):
    handler.handle("/delete")

    assert store.list_sessions() == ["current"]
    assert "No other sessions to delete" in output.getvalue()


@pytest.mark.parametrize("error", [EOFError, KeyboardInterrupt])
def test_closed_input_requests_exit(console, monkeypatch, error):
    def closed(*args, **kwargs):
        raise error()

    monkeypatch.setattr(Prompt, "ask", closed)

    with pytest.raises(ExitRequested):
        Prompter(console).ask("Question")


def test_choose_returns_selected_option(console, monkeypatch):
    monkeypatch.setattr(Prompt, "ask", lambda *args, **kwargs: "2")

    assert Prompter(console).choose("Pick one", ["first", "second", "third"]) == "second"
