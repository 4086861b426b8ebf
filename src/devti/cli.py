"""Command-line chat against the configured completion endpoint."""

from __future__ import annotations

import asyncio
import logging
import os
import time
from pathlib import Path

import click
import yaml
from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory
from rich.console import Console
from rich.markup import escape

from devti import __version__
from devti.config import DevtiConfig, load_config
from devti.context import ClassContext
from devti.llm.client import ChatClient
from devti.types import ChatRole, StreamState

console = Console()


def load_class_context(path: str | None) -> ClassContext | None:
    """Read a class context exported by an IDE front end (YAML or JSON)."""
    if path is None:
        return None
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict) or "name" not in raw:
        raise click.BadParameter(f"{path}: expected a mapping with a 'name' key")
    fields = ClassContext.__dataclass_fields__
    return ClassContext(**{k: v for k, v in raw.items() if k in fields})


async def stream_answer(
    client: ChatClient,
    text: str,
    system_prompt: str = "",
    keep_history: bool = True,
    context: ClassContext | None = None,
) -> str:
    """Print fragments as they arrive and return the full answer."""
    async with client.stream(text, system_prompt, keep_history, context) as stream:
        async for fragment in stream:
            console.print(fragment, end="", markup=False, highlight=False)
    console.print()
    if stream.state is StreamState.FAILED:
        console.print(f"[red]Stream ended with an error: {escape(str(stream.error))}[/red]")
    return stream.output


@click.group()
@click.option("--config", "-c", "config_path", default=None,
              help="Path to devti.yaml (auto-detected from CWD or ~/.devti/)")
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging")
@click.version_option(__version__, prog_name="devti")
@click.pass_context
def main(ctx: click.Context, config_path: str | None, verbose: bool):
    """devti - chat with an Azure/OpenAI-compatible endpoint."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)

    config, config_file = load_config(config_path)
    if verbose:
        console.print(f"[dim]Config: {config_file or 'defaults (no devti.yaml found)'}[/dim]")
    ctx.obj = config


@main.command()
@click.argument("prompt")
@click.option("--no-stream", is_flag=True, help="Wait for the whole answer")
@click.option("--system", "system_prompt", default="", help="System prompt for a fresh conversation")
@click.option("--context", "context_path", default=None,
              help="YAML/JSON file describing the class to discuss")
@click.pass_obj
def ask(config: DevtiConfig, prompt: str, no_stream: bool,
        system_prompt: str, context_path: str | None):
    """Send a single PROMPT and print the answer."""
    context = load_class_context(context_path)

    async def _run() -> None:
        async with ChatClient(config) as client:
            if no_stream:
                answer = await client.prompt(prompt, context=context)
                if not answer:
                    console.print("[yellow]No answer (see log for details)[/yellow]")
                    return
                console.print(answer, markup=False, highlight=False)
            else:
                await stream_answer(client, prompt, system_prompt, context=context)

    asyncio.run(_run())


@main.command()
@click.option("--system", "system_prompt", default="", help="System prompt for each fresh conversation")
@click.option("--no-history", is_flag=True, help="Send every prompt without earlier turns")
@click.pass_obj
def chat(config: DevtiConfig, system_prompt: str, no_history: bool):
    """Interactive chat (/clear resets the conversation, /exit quits)."""
    history_path = Path(os.path.expanduser("~/.devti/history"))
    history_path.parent.mkdir(parents=True, exist_ok=True)
    session: PromptSession[str] = PromptSession(history=FileHistory(str(history_path)))

    async def _loop() -> None:
        async with ChatClient(config) as client:
            while True:
                try:
                    user_input = (await session.prompt_async("> ")).strip()
                except (EOFError, KeyboardInterrupt):
                    break
                if not user_input:
                    continue
                if user_input in ("/exit", "/quit"):
                    break
                if user_input == "/clear":
                    client.clear_message()
                    console.print("[dim]Conversation cleared.[/dim]")
                    continue

                start = time.monotonic()
                answer = await stream_answer(
                    client, user_input, system_prompt, keep_history=not no_history,
                )
                if answer:
                    client.append_local_message(answer, ChatRole.ASSISTANT)
                console.print(f"[dim]({time.monotonic() - start:.1f}s)[/dim]\n")

    asyncio.run(_loop())
    console.print("[dim]Goodbye![/dim]")
