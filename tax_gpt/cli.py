"""
Command-line interface for Tax GPT.
"""

import signal
import sys
from pathlib import Path
from typing import Optional

import click
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from tax_gpt.assistant import KnowledgeBase, TaxGPT
from tax_gpt.rendering import create_console
from tax_gpt.storage import SessionStore
from tax_gpt.utils import get_logger, setup_logger
from tax_gpt.utils.config import ConfigurationError, Settings, load_settings, validate_credentials

console = create_console()
logger = get_logger(__name__)


def _raise_interrupt(signum, frame) -> None:
    raise KeyboardInterrupt()


def _knowledge_base_error(path: Path, error: OSError) -> None:
    """Report an unreadable knowledge base and how to point at it, then exit 1."""
    console.print(f"[error]Could not read knowledge base at {escape(str(path))}[/error]")
    console.print(f"[dim]  {escape(str(error))}[/dim]")
    console.print("[dim]  Set TAX_GPT_KNOWLEDGE_BASE to the publication text file[/dim]")
    sys.exit(1)


def _config_error(message: str) -> None:
    """Print a configuration error with remediation steps and exit 1."""
    err = create_console(stderr=True)
    err.print()
    err.print(f"  Error: {message}", style="error", markup=False)
    err.print()
    err.print("  1. Copy .env.example to .env", style="dim")
    err.print("  2. Add your API key from https://openrouter.ai/keys", style="dim")
    err.print()
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--config", "config_path", type=click.Path(dir_okay=False), help="YAML settings file")
@click.pass_context
def cli(ctx: click.Context, debug: bool, config_path: Optional[str]) -> None:
    """Tax GPT - tax savings assistant powered by IRS Publication 17."""
    try:
        settings = load_settings(config_path)
    except ConfigurationError as e:
        _config_error(str(e))

    level = "DEBUG" if debug else settings.logging.level
    log_file = settings.paths.resolved_log_file if settings.logging.to_file else None
    setup_logger(level=level, log_file=log_file)

    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug
    ctx.obj["settings"] = settings

    if ctx.invoked_subcommand is None:
        ctx.invoke(chat)


@cli.command()
@click.pass_context
def chat(ctx: click.Context) -> None:
    """Start the interactive tax assistant."""
    settings: Settings = ctx.obj["settings"]
    try:
        validate_credentials(settings)
    except ConfigurationError as e:
        _config_error(str(e))

    logger.debug(f"Starting chat with {settings.llm.provider} ({settings.llm.model})")
    signal.signal(signal.SIGTERM, _raise_interrupt)

    assistant = TaxGPT(settings, console=console)
    try:
        assistant.load_knowledge_base()
    except OSError as e:
        _knowledge_base_error(settings.paths.resolved_knowledge_base, e)
    except KeyboardInterrupt:
        console.print()
        console.print("  Goodbye!", style="system")
        return

    assistant.run_interactive()


@cli.command()
@click.pass_context
def stats(ctx: click.Context) -> None:
    """Show knowledge base statistics."""
    settings: Settings = ctx.obj["settings"]
    kb_path = settings.paths.resolved_knowledge_base
    try:
        kb = KnowledgeBase.load(kb_path, settings.retrieval.chunk_size)
    except OSError as e:
        _knowledge_base_error(kb_path, e)

    counts = kb.stats()
    rows = [
        ("Source:", KnowledgeBase.SOURCE),
        ("Title:", f'"{KnowledgeBase.TITLE}"'),
        ("Characters:", f"{counts['characters']:,}"),
        ("Lines:", f"{counts['lines']:,}"),
        ("Words:", f"{counts['words']:,}"),
        ("Chunks:", f"{counts['chunks']:,}"),
        ("Model:", settings.llm.model),
    ]
    body = "\n".join(f"· [agent_label]{label:<12}[/agent_label] {value}" for label, value in rows)
    console.print(Panel(body, title="Tax GPT  ·  Knowledge Base", border_style="agent_label", expand=False))
    console.print("  Topics: Filing requirements, Income, Deductions, Tax credits,", style="dim")
    console.print("          Estimated taxes, 2025 tax tables", style="dim")


@cli.command("sessions")
@click.pass_context
def list_sessions(ctx: click.Context) -> None:
    """List saved sessions."""
    store = SessionStore.from_settings(ctx.obj["settings"])
    store.init()
    listing = store.scan_sessions()
    if listing.error is not None:
        console.print(f"[warning]Could not read {store.sessions_dir}: {escape(str(listing.error))}[/warning]")
        return
    if not listing.ids:
        console.print("[system]No saved sessions[/system]")
        return

    table = Table(title="Sessions", border_style="border")
    table.add_column("ID", style="agent_label")
    table.add_column("Name")
    table.add_column("Turns", justify="right")
    table.add_column("Created", style="dim")

    for session_id in listing.ids:
        session = store.load(session_id)
        if session is None:
            table.add_row(session_id, "[error]unreadable[/error]", "", "")
            continue
        table.add_row(
            session.id,
            session.name,
            str(session.metadata.total_turns),
            session.created_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)


@cli.command()
@click.argument("session_id")
@click.option("--output", "-o", type=click.Path(file_okay=False), default=".",
              help="Output directory")
@click.pass_context
def export(ctx: click.Context, session_id: str, output: str) -> None:
    """Export a session to a Markdown file."""
    store = SessionStore.from_settings(ctx.obj["settings"])
    if store.load(session_id) is None:
        console.print(f"[error]Session not found: {session_id}[/error]")
        sys.exit(1)

    Path(output).mkdir(parents=True, exist_ok=True)
    export_path = store.export_markdown(output)
    console.print(f"[highlight]Exported to {export_path}[/highlight]")


@cli.command()
@click.argument("session_id")
@click.pass_context
def delete(ctx: click.Context, session_id: str) -> None:
    """Delete a saved session."""
    store = SessionStore.from_settings(ctx.obj["settings"])
    deleted = store.delete(session_id)
    if deleted:
        console.print(f"[system]Deleted: {session_id}[/system]")
    else:
        console.print(f"[warning]No session named {session_id}[/warning]")
        sys.exit(1)


def main() -> None:
    """Console script entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
