"""CLI entry point for chat-timeline.

Invoked as::

    chat-timeline [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m chat_timeline.cli.main

Commands
--------
- version      — Show version information
- chat         — Conversation command group

Chat sub-commands
-----------------
- chat new     — Create an empty conversation
- chat list    — List conversations grouped by recency
- chat show    — Show a conversation's active timeline
- chat send    — Send a message and print the full response
- chat edit    — Edit an earlier user message and regenerate
- chat switch  — Show the previous or next version of a message
- chat delete  — Delete one conversation
- chat clear   — Delete every conversation
"""
from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import AsyncIterator
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from chat_timeline.config import GenerationConfig, TimelineConfig
from chat_timeline.convenience import ChatTimeline
from chat_timeline.conversation.state import Conversation, Message, MessageRole
from chat_timeline.errors import ProviderError, ProviderErrorCategory, TimelineError
from chat_timeline.generation.provider import ModelProvider, StreamChunk
from chat_timeline.storage.base import StorageBackend

console = Console()

_DEFAULT_DIR = Path.home() / ".chat-timeline"


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def _make_backend(
    storage: str,
    db_path: str | None,
    storage_dir: str | None,
) -> StorageBackend:
    """Instantiate the requested storage backend.

    Parameters
    ----------
    storage:
        Backend name: ``"memory"``, ``"filesystem"``, or ``"sqlite"``.
    db_path:
        Path to the SQLite database (used when ``storage="sqlite"``).
    storage_dir:
        Directory for the filesystem backend.
    """
    from chat_timeline.storage.filesystem import FilesystemBackend
    from chat_timeline.storage.memory import InMemoryBackend
    from chat_timeline.storage.sqlite import SQLiteBackend

    if storage == "memory":
        return InMemoryBackend()
    if storage == "filesystem":
        return FilesystemBackend(storage_dir=Path(storage_dir) if storage_dir else _DEFAULT_DIR)
    if storage == "sqlite":
        return SQLiteBackend(db_path=Path(db_path) if db_path else _DEFAULT_DIR / "store.db")
    console.print(f"[red]Unknown storage backend: {storage!r}[/red]")
    sys.exit(1)


def _make_provider(api_key: str, model: str) -> ModelProvider:
    """Build the Gemini provider used by ``send`` and ``edit``."""
    from chat_timeline.generation.gemini import GeminiProvider

    return GeminiProvider(api_key=api_key, config=GenerationConfig(model=model))


class _OfflineProvider(ModelProvider):
    """Stands in for a provider where a command never generates."""

    async def request_continuation(
        self,
        conversation_id: str,
        history: list[Message],
        prompt_text: str,
        prompt_images: list[str],
    ) -> AsyncIterator[StreamChunk]:
        raise ProviderError(ProviderErrorCategory.INVALID_KEY, "no API key configured")
        yield StreamChunk()  # pragma: no cover


def _open(ctx: click.Context, provider: ModelProvider | None = None) -> ChatTimeline:
    return ChatTimeline(
        provider=provider or _OfflineProvider(),
        backend=ctx.obj["backend"],
        config=TimelineConfig(),
    )


def _require_key(api_key: str | None) -> str:
    if not api_key:
        raise click.UsageError("An API key is required: pass --api-key or set GEMINI_API_KEY.")
    return api_key


def _fail(exc: TimelineError) -> None:
    console.print(f"[red]Error:[/red] {exc}")
    sys.exit(1)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def _render_message(message: Message) -> Panel:
    role_style = "green" if message.role == MessageRole.USER else "blue"
    header = f"[{role_style}]{message.role.value.upper()}[/{role_style}] | {message.message_id[:8]}"
    if message.versions is not None:
        header += f" | version {message.active_version_index + 1}/{message.version_count}"
    if message.streaming:
        header += " | [yellow]streaming[/yellow]"

    body = message.content.text or "[dim](empty)[/dim]"
    if message.content.images:
        body += f"\n[dim]{len(message.content.images)} image(s) attached[/dim]"
    if message.error is not None:
        body = f"[red]{body}[/red]"
    if message.citations:
        sources = "\n".join(f"- {c.title or c.uri} ({c.uri})" for c in message.citations)
        body += f"\n\n[bold]Sources:[/bold]\n{sources}"
    return Panel(body, title=header, expand=False)


def _render_conversation(conversation: Conversation) -> None:
    console.print(f"[bold]{conversation.title}[/bold] [dim]({conversation.conversation_id})[/dim]")
    if not conversation.messages:
        console.print("[dim]No messages yet.[/dim]")
    for message in conversation.messages:
        console.print(_render_message(message))


# ---------------------------------------------------------------------------
# Root group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="chat-timeline")
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Emit library logs at this level.",
)
def cli(log_level: str | None) -> None:
    """Branching chat timelines with editable, versioned messages"""
    if log_level:
        logging.basicConfig(
            level=log_level.upper(),
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )


@cli.command(name="version")
def version_command() -> None:
    """Show version information."""
    from chat_timeline import __version__

    console.print(f"[bold]chat-timeline[/bold] v{__version__}")


# ---------------------------------------------------------------------------
# chat command group
# ---------------------------------------------------------------------------


@cli.group(name="chat")
@click.option(
    "--storage",
    default="filesystem",
    show_default=True,
    type=click.Choice(["memory", "filesystem", "sqlite"], case_sensitive=False),
    help="Storage backend to use.",
)
@click.option("--db-path", default=None, help="Path to SQLite database (sqlite backend).")
@click.option("--storage-dir", default=None, help="Directory for filesystem backend.")
@click.pass_context
def chat_group(
    ctx: click.Context,
    storage: str,
    db_path: str | None,
    storage_dir: str | None,
) -> None:
    """Conversation commands."""
    ctx.ensure_object(dict)
    ctx.obj["backend"] = _make_backend(storage.lower(), db_path, storage_dir)


@chat_group.command(name="new")
@click.option("--title", default=None, help="Initial title.")
@click.pass_context
def chat_new(ctx: click.Context, title: str | None) -> None:
    """Create an empty conversation and print its ID."""
    conversation = _open(ctx).new_conversation(title)
    console.print(f"[green]Conversation created:[/green] {conversation.conversation_id}")


@chat_group.command(name="list")
@click.pass_context
def chat_list(ctx: click.Context) -> None:
    """List conversations grouped by how recently they were updated."""
    store = _open(ctx).store
    if not len(store):
        console.print("[yellow]No conversations found.[/yellow]")
        return

    for label, conversations in store.group_by_recency().items():
        if not conversations:
            continue
        table = Table(title=label, show_lines=False)
        table.add_column("Conversation ID", style="cyan")
        table.add_column("Title")
        table.add_column("Messages", justify="right")
        table.add_column("Updated")
        for conversation in conversations:
            table.add_row(
                conversation.conversation_id,
                conversation.title,
                str(len(conversation.messages)),
                conversation.updated_at.strftime("%Y-%m-%d %H:%M"),
            )
        console.print(table)


@chat_group.command(name="show")
@click.argument("conversation_id")
@click.option("--json-output", is_flag=True, help="Output raw JSON instead of formatted view.")
@click.pass_context
def chat_show(ctx: click.Context, conversation_id: str, json_output: bool) -> None:
    """Show the active timeline of CONVERSATION_ID."""
    try:
        conversation = _open(ctx).store.get(conversation_id)
    except TimelineError as exc:
        _fail(exc)
        return

    if json_output:
        console.print_json(conversation.model_dump_json(indent=2))
        return
    _render_conversation(conversation)


@chat_group.command(name="send")
@click.argument("conversation_id")
@click.argument("text")
@click.option("--api-key", envvar="GEMINI_API_KEY", default=None, help="Gemini API key.")
@click.option("--model", default=GenerationConfig.model, show_default=True, help="Model name.")
@click.pass_context
def chat_send(
    ctx: click.Context,
    conversation_id: str,
    text: str,
    api_key: str | None,
    model: str,
) -> None:
    """Send TEXT to CONVERSATION_ID and print the response."""
    timeline = _open(ctx, _make_provider(_require_key(api_key), model))
    try:
        reply = asyncio.run(timeline.send(conversation_id, text))
    except TimelineError as exc:
        _fail(exc)
        return
    if reply is not None:
        console.print(_render_message(reply))


@chat_group.command(name="edit")
@click.argument("conversation_id")
@click.argument("message_id")
@click.argument("text")
@click.option("--api-key", envvar="GEMINI_API_KEY", default=None, help="Gemini API key.")
@click.option("--model", default=GenerationConfig.model, show_default=True, help="Model name.")
@click.pass_context
def chat_edit(
    ctx: click.Context,
    conversation_id: str,
    message_id: str,
    text: str,
    api_key: str | None,
    model: str,
) -> None:
    """Replace user message MESSAGE_ID with TEXT as a new version and regenerate."""
    timeline = _open(ctx, _make_provider(_require_key(api_key), model))
    try:
        reply = asyncio.run(timeline.edit(conversation_id, message_id, text))
    except TimelineError as exc:
        _fail(exc)
        return
    if reply is not None:
        console.print(_render_message(reply))


@chat_group.command(name="switch")
@click.argument("conversation_id")
@click.argument("message_id")
@click.option(
    "--next/--prev",
    "forward",
    default=False,
    help="Move to the next version instead of the previous one.",
)
@click.pass_context
def chat_switch(
    ctx: click.Context,
    conversation_id: str,
    message_id: str,
    forward: bool,
) -> None:
    """Switch MESSAGE_ID to its previous (default) or next version."""
    timeline = _open(ctx)
    try:
        timeline.switch_version(conversation_id, message_id, 1 if forward else -1)
    except TimelineError as exc:
        _fail(exc)
        return
    _render_conversation(timeline.store.get(conversation_id))


@chat_group.command(name="delete")
@click.argument("conversation_id")
@click.pass_context
def chat_delete(ctx: click.Context, conversation_id: str) -> None:
    """Delete CONVERSATION_ID."""
    try:
        _open(ctx).delete(conversation_id)
    except TimelineError as exc:
        _fail(exc)
        return
    console.print(f"[green]Deleted:[/green] {conversation_id}")


@chat_group.command(name="clear")
@click.confirmation_option(prompt="Delete all conversations? This cannot be undone.")
@click.pass_context
def chat_clear(ctx: click.Context) -> None:
    """Delete every conversation."""
    _open(ctx).clear_all()
    console.print("[green]All conversations deleted.[/green]")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


if __name__ == "__main__":
    cli()
