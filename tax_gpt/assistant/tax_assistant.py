"""
Interactive tax savings assistant.
Answers questions from IRS Publication 17 excerpts and streams replies to the terminal.
"""

import asyncio
import os
from typing import Optional

from rich.console import Console
from rich.text import Text

from tax_gpt.rendering import ICONS, StreamRenderer, create_console
from tax_gpt.storage import Role, SessionStore
from tax_gpt.utils import get_logger
from tax_gpt.utils.config import Settings

from .commands import CommandHandler, ExitRequested, Prompter
from .knowledge_base import KnowledgeBase
from .llm_client import CompletionClient
from .prompts import PromptAssembler, PromptTemplates
from .retriever import Retriever

logger = get_logger(__name__)

CUSTOM_QUESTION = "✏️  OR type whatever you want!"


class TaxGPT:
    """
    Interactive tax assistant.

    One session is current at a time. Each turn retrieves publication
    excerpts, streams the model's reply and records both sides of the
    exchange in the session store.
    """

    def __init__(
        self,
        settings: Settings,
        console: Optional[Console] = None,
        store: Optional[SessionStore] = None,
        client: Optional[CompletionClient] = None,
        prompter: Optional[Prompter] = None,
    ):
        """
        Initialize the assistant.

        Args:
            settings: Application settings
            console: Output sink (a themed terminal console if None)
            store: Session store (built from settings if None)
            client: Completion client (built from settings on first use if None)
            prompter: Interactive prompt collaborator
        """
        self.settings = settings
        self.console = console or create_console()
        self.store = store or SessionStore.from_settings(settings)
        self.knowledge_base = KnowledgeBase(chunk_size=settings.retrieval.chunk_size)
        self.retriever = Retriever(self.knowledge_base.chunks)
        self.assembler = PromptAssembler(self.retriever, self.store, settings.retrieval, settings.history)
        self.renderer = StreamRenderer(self.console, settings.render)
        self.prompter = prompter or Prompter(self.console)
        self.commands = CommandHandler(self.store, self.console, self.prompter)
        self._client = client
        self._runner: Optional[asyncio.Runner] = None

    @property
    def client(self) -> CompletionClient:
        if self._client is None:
            self._client = CompletionClient(self.settings.llm)
        return self._client

    def load_knowledge_base(self) -> KnowledgeBase:
        """
        Load and chunk the knowledge base file.

        Raises:
            FileNotFoundError: The configured file does not exist
        """
        path = self.settings.paths.resolved_knowledge_base
        with self.console.status(Text(f"Loading {KnowledgeBase.SOURCE}...", style="system"), spinner="dots"):
            try:
                kb = KnowledgeBase.load(path, self.settings.retrieval.chunk_size)
            except OSError:
                self.console.print(Text("  Failed to load knowledge base", style="error"))
                raise

        self.knowledge_base = kb
        self.retriever.chunks = kb.chunks
        self.print_system(f"Loaded {len(kb.chunks):,} chunks")
        return kb

    async def answer(self, question: str, record_question: bool = True) -> str:
        """
        Answer a question, streaming the reply to the console.

        Args:
            question: The user's question
            record_question: Store the question in the session history

        Returns:
            Full reply text
        """
        with self.console.status(Text("Searching...", style="dim"), spinner="dots") as status:
            messages = self.assembler.build_messages(question)
            if record_question:
                self.store.append_message(Role.USER, question)
            status.update(Text("Analyzing...", style="dim"))
            deltas = await self.client.stream_chat(messages)

        reply = await self.renderer.render(deltas)
        self.store.append_message(Role.ASSISTANT, reply)
        return reply

    def print_welcome(self) -> None:
        self.console.print()
        self.console.print(Text(
            "  ╔══════════════════════════════════════════════════════════╗\n"
            "  ║                                                          ║\n"
            "  ║              Tax GPT  ·  Tax Assistant                   ║\n"
            "  ║                                                          ║\n"
            "  ╚══════════════════════════════════════════════════════════╝",
            style="agent_label",
        ))
        self.console.print()
        self.console.print(Text(
            f"  {KnowledgeBase.SOURCE}  ·  {self.settings.llm.model}  ·  /help", style="dim"
        ))
        self.console.print()

    def print_system(self, message: str) -> None:
        self.console.print(Text(f"  {ICONS['system']} {message}", style="system"))

    def print_error(self, message: str) -> None:
        self.console.print()
        self.console.print(Text(f"  {ICONS['dot']} {message}", style="error"))
        self.console.print()

    def print_input_box(self) -> None:
        width = min(self.console.width - 4, 76)
        self.console.print(Text("  " + "─" * width, style="dim"))

    def print_disclaimer(self) -> None:
        self.console.print()
        self.console.print(Text.assemble(
            (f"  {ICONS['dot']} ", "dim"), ("Not professional tax advice", "dim italic")
        ))
        self.console.print()

    def _run(self, coro):
        if self._runner is None:
            return asyncio.run(coro)
        return self._runner.run(coro)

    def run_turn(self, question: str, record_question: bool = True, error_prefix: str = "") -> Optional[str]:
        """
        Answer one question, reporting failures inline.

        Returns:
            The reply, or None if the turn failed
        """
        try:
            reply = self._run(self.answer(question, record_question))
        except (KeyboardInterrupt, ExitRequested):
            raise
        except Exception as e:
            logger.error(f"Turn failed: {e}")
            self.print_error(f"{error_prefix}{e}")
            return None

        if record_question:
            self.print_disclaimer()
        else:
            self.console.print()
        return reply

    def _onboard(self) -> None:
        """Greet a brand new session and offer starter questions."""
        self.run_turn(PromptTemplates.WELCOME_REQUEST, record_question=False,
                      error_prefix="Failed to load welcome message: ")

        self.console.print(Text("  " + "─" * 41, style="dim"))
        self.console.print(Text("  Select a number or type any question:", style="dim"))
        options = [*PromptTemplates.STARTER_QUESTIONS, CUSTOM_QUESTION]
        selected = self.prompter.choose("[system]Get started[/system]", options)

        if selected == CUSTOM_QUESTION:
            question = self.prompter.ask(f"[user]  {ICONS['user']}[/user]")
        else:
            question = selected
            self.console.print(Text(f"  {ICONS['user']} {question}", style="user"))

        if question.strip():
            self.console.print()
            self.run_turn(question)

    def shutdown(self) -> None:
        """
        Save the current session and stop.

        A second interrupt while saving drops the save and ends the process
        at once with status 1, without joining the writer thread.
        """
        self.console.print()
        self.console.print(Text("  Saving session and exiting...", style="system"))
        try:
            self.store.flush()
        except KeyboardInterrupt:
            self.console.print()
            self.console.print(Text("  Forced exit", style="error"))
            self.store.abort()
            os._exit(1)
        except Exception as e:
            logger.warning(f"Could not save session during shutdown: {e}")

        self.store.close()

        self.console.print(Text(f"  {ICONS['check']} Goodbye!", style="highlight"))
        self.console.print()

    def run_interactive(self) -> None:
        """Run the interactive assistant session."""
        self.print_welcome()
        self.store.init()
        if self.store.current is None:
            self.store.create()

        self.print_system(f"Session: {self.store.current.name}")
        self.console.print()

        with asyncio.Runner() as runner:
            self._runner = runner
            try:
                if not self.store.current.messages:
                    self._onboard()

                while True:
                    self.print_input_box()
                    user_input = self.prompter.ask(f"[user]  {ICONS['user']}[/user]")

                    if not user_input.strip():
                        continue

                    if user_input.startswith("/"):
                        self.commands.handle(user_input)
                        continue

                    self.console.print()
                    self.run_turn(user_input)

            except (KeyboardInterrupt, ExitRequested):
                self.shutdown()
            finally:
                self._runner = None
