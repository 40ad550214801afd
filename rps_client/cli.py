#!/usr/bin/env python3

from __future__ import annotations
import asyncio
from pathlib import Path
from typing import Optional

import aioconsole
import click
import typer
from rich.console import Console, Group
from rich.table import Table
from rich.text import Text

from rps_shared.errors import ConfigError
from rps_shared.log import configure_root_logging, get_logger
from rps_shared.models import Move
from .client import GameClient
from .config import LOG_LEVELS, ClientConfig, load_config
from .state import ConnectionStatus, SessionSnapshot

app = typer.Typer(help="Rock Paper Scissors WebSocket client")
console = Console()
logger = get_logger(__name__)


STATUS_STYLES = {
    ConnectionStatus.CONNECTING: "yellow",
    ConnectionStatus.WAITING: "blue",
    ConnectionStatus.PLAYING: "green",
    ConnectionStatus.RESULT: "magenta",
}

MOVE_KEYS = {
    "r": Move.ROCK,
    "p": Move.PAPER,
    "s": Move.SCISSORS,
}

HELP_TEXT = "r/rock, p/paper, s/scissors, /help, /quit"


def parse_move_input(line: str) -> Optional[Move]:
    """Map a terminal line to a move: single letter or full name, any case."""
    key = line.strip().lower()
    if key in MOVE_KEYS:
        return MOVE_KEYS[key]
    try:
        return Move.from_string(key)
    except ValueError:
        return None


def render_snapshot(snapshot: SessionSnapshot) -> Group:
    parts = []
    if snapshot.error_message:
        parts.append(Text(snapshot.error_message, style="bold red"))
    parts.append(Text(snapshot.status_message, style=f"bold {STATUS_STYLES[snapshot.status]}"))

    result = snapshot.last_result
    if result is not None:
        table = Table(show_header=True, header_style="dim")
        table.add_column("Your move", justify="center")
        table.add_column("", justify="center")
        table.add_column("Opponent's move", justify="center")
        table.add_row(result.own_move.value, "VS", result.opponent_move.value)
        parts.append(table)
    elif snapshot.can_move:
        parts.append(Text("Your move: [r]ock, [p]aper or [s]cissors", style="dim"))
    elif snapshot.selected_move is not None:
        parts.append(Text(f"You picked {snapshot.selected_move.value}", style="dim"))
    return Group(*parts)


async def _play(config: ClientConfig) -> None:
    client = GameClient(config)
    client.subscribe(lambda snapshot: console.print(render_snapshot(snapshot)))
    console.print(render_snapshot(client.snapshot()))
    client.start()

    try:
        while True:
            line = (await aioconsole.ainput("")).strip()
            if not line:
                continue
            if line in {"/quit", "/exit"}:
                break
            if line == "/help":
                console.print(HELP_TEXT)
                continue
            move = parse_move_input(line)
            if move is None:
                console.print(f"Unknown move {line!r}. Try {HELP_TEXT}")
                continue
            if not await client.submit_move(move):
                console.print("[dim]You can't move right now[/]")
    except EOFError:
        logger.info("stdin closed; leaving")
    finally:
        await client.stop()


def _resolve(config_path: Optional[Path], **overrides) -> ClientConfig:
    try:
        return load_config(config_path).with_overrides(**overrides)
    except ConfigError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(code=2)


@app.command()
def play(
    server: Optional[str] = typer.Option(None, help="WebSocket URL of the game server"),
    config: Optional[Path] = typer.Option(None, "--config", help="Path to a YAML config file"),
    log_level: Optional[str] = typer.Option(
        None,
        click_type=click.Choice(LOG_LEVELS, case_sensitive=False),
        help="Log level",
    ),
):
    """Connect to the game server and play rounds from the terminal."""
    resolved = _resolve(config, endpoint=server, log_level=log_level)
    configure_root_logging(resolved.log_level)
    console.print(f"[bold green]RPS client starting[/] on {resolved.endpoint}")
    try:
        asyncio.run(_play(resolved))
    except KeyboardInterrupt:
        console.print("Bye")


@app.command("config")
def show_config(
    config: Optional[Path] = typer.Option(None, "--config", help="Path to a YAML config file"),
):
    """Print the resolved configuration."""
    resolved = _resolve(config)
    table = Table(title="RPS client configuration")
    table.add_column("Option")
    table.add_column("Value")
    for key, value in resolved.to_dict().items():
        table.add_row(key, str(value))
    console.print(table)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
