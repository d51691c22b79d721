"""
Slash commands for the interactive assistant.
"""

from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt

from tax_gpt.rendering import ICONS
from tax_gpt.storage import Role, SessionStore
from tax_gpt.utils import get_logger

logger = get_logger(__name__)

HISTORY_PREVIEW_CHARS = 60


class ExitRequested(Exception):
    """The user asked to leave, by command or by aborting a prompt."""


class Prompter:
    """Reads answers from the user; aborting any prompt is an exit request."""

    def __init__(self, console: Console):
        self.console = console

    def ask(self, message: str = "", choices: Optional[Sequence[str]] = None, default: Optional[str] = None) -> str:
        """
        Ask for a line of input.

        Raises:
            ExitRequested: The user pressed Ctrl+C or closed stdin
        """
        kwargs = {"console": self.console}
        if choices is not None:
            kwargs["choices"] = list(choices)
        if default is not None:
            kwargs["default"] = default
        try:
            return Prompt.ask(message, **kwargs)
        except (KeyboardInterrupt, EOFError) as e:
            raise ExitRequested() from e

    def choose(self, message: str, options: Sequence[str]) -> str:
        """Show a numbered list and return the option the user picks."""
        for i, option in enumerate(options, 1):
            self.console.print(f"  [dim]{i}.[/dim] {option}", markup=True, highlight=False)
        choice = self.ask(message, choices=[str(i) for i in range(1, len(options) + 1)])
        return options[int(choice) - 1]


class CommandHandler:
    """Handles /commands typed at the chat prompt."""

    def __init__(self, store: SessionStore, console: Console, prompter: Prompter, export_dir: str | Path = "."):
        self.store = store
        self.console = console
        self.prompter = prompter
        self.export_dir = Path(export_dir)

        self._handlers = {
            "/help": self.show_help,
            "/quit": self.quit,
            "/exit": self.quit,
            "/new": self.new_session,
            "/sessions": self.list_sessions,
            "/switch": self.switch_session,
            "/clear": self.clear_history,
            "/history": self.show_history,
            "/export": self.export_session,
            "/delete": self.delete_session,
        }

    def _system(self, message: str) -> None:
        self.console.print(f"  {ICONS['system']} {message}", style="system", markup=False, highlight=False)

    def _error(self, message: str) -> None:
        self.console.print(f"  {ICONS['dot']} {message}", style="error", markup=False, highlight=False)

    def handle(self, user_input: str) -> bool:
        """
        Run a slash command.

        Returns:
            True if the input was a command (known or not), False otherwise

        Raises:
            ExitRequested: The command was /quit or /exit
        """
        command = user_input.strip().lower()
        if not command.startswith("/"):
            return False

        handler = self._handlers.get(command)
        if handler is None:
            self.console.print()
            self._error(f"Unknown command: {command}")
            self._system("Type /help for commands")
            self.console.print()
            return True

        logger.debug(f"Running command {command}")
        handler()
        return True

    def show_help(self) -> None:
        self.console.print(Panel(
            "[agent_label]Commands[/agent_label]\n\n"
            "[highlight]/new[/highlight]      Start new session\n"
            "[highlight]/sessions[/highlight] List all sessions\n"
            "[highlight]/switch[/highlight]   Switch to another session\n"
            "[highlight]/clear[/highlight]    Clear current history\n"
            "[highlight]/history[/highlight]  Show recent messages\n"
            "[highlight]/export[/highlight]   Export to markdown\n"
            "[highlight]/delete[/highlight]   Delete a session\n"
            "[highlight]/quit[/highlight]     Exit",
            border_style="border",
            expand=False,
            padding=1,
        ))

    def quit(self) -> None:
        raise ExitRequested()

    def new_session(self) -> None:
        name = self.prompter.ask("[system]Session name (optional)[/system]", default="")
        session = self.store.create(name or None)
        self.console.print()
        self._system(f"New session: {session.name}")
        self.console.print()

    def list_sessions(self) -> None:
        sessions = self.store.list_sessions()
        if not sessions:
            self._system("No saved sessions")
            self.console.print()
            return

        current_id = self.store.current.id if self.store.current else None
        self.console.print()
        self.console.print("  Sessions:", style="agent_label")
        self.console.print("  " + "─" * 40, style="dim")
        for session_id in sessions:
            if session_id == current_id:
                self.console.print(f"[highlight]{ICONS['check']} [/highlight][white]{session_id}[/white]", highlight=False)
            else:
                self.console.print(f"  {session_id}", style="dim", markup=False, highlight=False)
        self.console.print()

    def switch_session(self) -> None:
        current_id = self.store.current.id if self.store.current else None
        choices = [s for s in self.store.list_sessions() if s != current_id]
        if not choices:
            self._system("No sessions to switch to")
            self.console.print()
            return

        selected = self.prompter.choose("[system]Select session[/system]", choices)
        self.console.print()
        if self.store.load(selected) is None:
            self._error(f"Could not load session: {selected}")
        else:
            self._system(f"Switched to: {selected}")
        self.console.print()

    def clear_history(self) -> None:
        if self.store.current is None:
            return
        self.store.clear_history()
        self._system("History cleared")
        self.console.print()

    def show_history(self) -> None:
        session = self.store.current
        if session is None or not session.messages:
            self._system("No history in current session")
            self.console.print()
            return

        self.console.print()
        self.console.print("  History:", style="agent_label")
        self.console.print("  " + "─" * 40, style="dim")
        for message in session.messages:
            if message.role == Role.USER:
                icon = f"[user]{ICONS['user']}[/user]"
            else:
                icon = f"[agent_label]{ICONS['agent']}[/agent_label]"
            preview = message.content[:HISTORY_PREVIEW_CHARS]
            if len(message.content) > HISTORY_PREVIEW_CHARS:
                preview += "..."
            self.console.print(f"  {icon} ", end="", highlight=False)
            self.console.print(preview, style="dim", markup=False, highlight=False)
        self.console.print()

    def export_session(self) -> None:
        if self.store.current is None:
            self._error("No active session")
            return

        try:
            export_path = self.store.export_markdown(self.export_dir)
        except OSError as e:
            logger.error(f"Export failed: {e}")
            self._error(f"Export failed: {e}")
            return

        self.console.print()
        self._system(f"Exported: {export_path}")
        self.console.print()

    def delete_session(self) -> None:
        current_id = self.store.current.id if self.store.current else None
        deletable = [s for s in self.store.list_sessions() if s != current_id]
        if not deletable:
            self._system("No other sessions to delete")
            self.console.print()
            return

        to_delete = self.prompter.choose("[system]Delete session[/system]", deletable)
        if self.store.delete(to_delete):
            self._system(f"Deleted: {to_delete}")
        else:
            self._error(f"Could not delete: {to_delete}")
        self.console.print()
