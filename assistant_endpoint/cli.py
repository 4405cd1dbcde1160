"""
Command-Line Interface for the assistant endpoint connector.

This module provides the CLI commands using Click:
- connect: Run the handshake and report the connection state
- ask: Send a prompt (optionally with attachments) and print the reply
- stream: Stream a reply to the terminal as it arrives
- upload: Upload a file and print its server id
- models: List the models served by the agent

Settings come from a YAML profile (--config) or ASSISTANT_ENDPOINT_*
environment variables; command-line options override both.

Usage:
    assistant-endpoint --agent-id abc ask "What is a closure?"
    assistant-endpoint --config profiles/agent.yaml stream "Write a haiku"
"""

import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import ConnectionSettings, load_settings_yaml, settings_from_env
from .errors import AssistantEndpointError, ConnectionError
from .llm import ServerConnection
from .streaming import StreamingResponse

# Rich console for pretty output
console = Console()


# ── Logging Setup ──
def setup_logging(verbose: bool = False):
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def make_connection(settings: ConnectionSettings) -> ServerConnection:
    """Session factory; tests replace it to inject a mock transport."""
    return ServerConnection(settings)


async def _connected(settings: ConnectionSettings) -> ServerConnection:
    conn = make_connection(settings)
    if not await conn.connect():
        raise ConnectionError(f"Could not connect to {settings.server_url}")
    return conn


def _run(coro):
    """Run a command coroutine, turning connector errors into exit code 1."""
    try:
        return asyncio.run(coro)
    except AssistantEndpointError as e:
        console.print(f"[bold red]Error:[/] {e}")
        raise SystemExit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="YAML connection profile")
@click.option("--server-url", envvar="ASSISTANT_ENDPOINT_SERVER_URL", default=None, help="Server base URL")
@click.option("--api-key", envvar="ASSISTANT_ENDPOINT_API_KEY", default=None, help="API key")
@click.option("--agent-id", envvar="ASSISTANT_ENDPOINT_AGENT_ID", default=None, help="Agent access id")
@click.option("--timeout", type=float, default=None, help="Request timeout in seconds")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.pass_context
def main(ctx, config_path, server_url, api_key, agent_id, timeout, verbose):
    """
    Talk to a remote assistant agent from the terminal.
    """
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["options"] = {
        "config_path": config_path,
        "server_url": server_url,
        "api_key": api_key,
        "agent_access_id": agent_id,
        "timeout": timeout,
    }


def _settings(ctx) -> ConnectionSettings:
    """Resolve settings lazily so --help works without any configuration."""
    options = dict(ctx.obj["options"])
    config_path = options.pop("config_path")
    try:
        if config_path:
            return load_settings_yaml(config_path, **options)
        return settings_from_env(**options)
    except AssistantEndpointError as e:
        console.print(f"[bold red]Configuration error:[/] {e}")
        raise SystemExit(1)


@main.command()
@click.pass_context
def connect(ctx):
    """
    Check that the agent accepts our credentials.

    Example:
        assistant-endpoint --agent-id abc connect
    """
    settings = _settings(ctx)

    async def _go():
        conn = make_connection(settings)
        try:
            return await conn.connect()
        finally:
            await conn.disconnect()

    if _run(_go()):
        console.print(f"[bold green]Connected[/] to {settings.server_url}")
    else:
        console.print(f"[bold red]Connection failed[/] ({settings.server_url})")
        raise SystemExit(1)


@main.command()
@click.argument("prompt")
@click.option("--file", "-f", "files", multiple=True,
              type=click.Path(exists=True, dir_okay=False, path_type=Path),
              help="Attach a file (repeatable)")
@click.option("--parent", default=None, help="Parent message id for threaded replies")
@click.pass_context
def ask(ctx, prompt: str, files: tuple[Path, ...], parent: str):
    """
    Send PROMPT and print the reply.

    Example:
        assistant-endpoint ask "Explain this" -f main.py
    """
    settings = _settings(ctx)

    async def _go():
        conn = await _connected(settings)
        try:
            file_ids = [await conn.upload_file(p.name, p.read_bytes()) for p in files]
            return await conn.send_request(prompt, file_ids=file_ids or None, parent_message_id=parent)
        finally:
            await conn.disconnect()

    console.print(_run(_go()), markup=False, highlight=False)


@main.command()
@click.argument("prompt")
@click.pass_context
def stream(ctx, prompt: str):
    """
    Stream the reply to PROMPT as it is generated.

    Example:
        assistant-endpoint stream "Write a poem about tests"
    """
    settings = _settings(ctx)
    response = StreamingResponse()
    response.on_chunk_received(lambda chunk: console.print(chunk, end="", markup=False, highlight=False))

    async def _go():
        conn = await _connected(settings)
        try:
            return await conn.send_streaming_request(prompt, response=response)
        finally:
            await conn.disconnect()

    result = _run(_go())
    console.print()
    if result.errored:
        console.print(f"[bold red]Stream failed:[/] {result.last_error}")
        raise SystemExit(1)


@main.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def upload(ctx, path: Path):
    """
    Upload PATH and print the server file id.

    Example:
        assistant-endpoint upload notes.txt
    """
    settings = _settings(ctx)

    async def _go():
        conn = await _connected(settings)
        try:
            return await conn.upload_file(path.name, path.read_bytes())
        finally:
            await conn.disconnect()

    console.print(_run(_go()), markup=False, highlight=False)


@main.command()
@click.pass_context
def models(ctx):
    """List the models served by the agent."""
    settings = _settings(ctx)

    async def _go():
        conn = await _connected(settings)
        try:
            return await conn.list_models()
        finally:
            await conn.disconnect()

    model_ids = _run(_go())

    table = Table(title="Available Models", min_width=40)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Model", style="cyan")
    for i, model_id in enumerate(model_ids, 1):
        table.add_row(str(i), model_id)

    console.print(table)


if __name__ == "__main__":
    main()
