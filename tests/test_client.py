import json

import pytest
from rich.console import Console
from typer.testing import CliRunner

from conftest import GAME_START, game_result, settle
from rps_client.cli import app, parse_move_input, render_snapshot
from rps_client.client import GameClient
from rps_client.config import ClientConfig
from rps_client.state import ConnectionStatus, SessionState
from rps_shared.models import Move, Moves, RoundResult, Winner

URL = "ws://game.test:8765"


@pytest.fixture
def client(connector, scheduler):
    return GameClient(ClientConfig(endpoint=URL), scheduler=scheduler, connect=connector)


@pytest.mark.asyncio
async def test_full_round_and_reconnect(client, connector, scheduler):
    client.start()
    await settle()
    assert client.snapshot().status is ConnectionStatus.WAITING

    ws = connector.latest
    ws.push(GAME_START)
    await settle()
    assert client.snapshot().can_move

    assert await client.submit_move("rock") is True
    assert await client.submit_move("paper") is False
    assert [json.loads(m) for m in ws.sent_messages] == [{"action": "move", "move": "ROCK"}]

    ws.push(game_result("PLAYER1", "ROCK", "SCISSORS"))
    await settle()
    snap = client.snapshot()
    assert snap.status is ConnectionStatus.RESULT
    assert snap.last_result.opponent_move is Move.SCISSORS

    scheduler.advance(3.0)
    assert client.snapshot().status is ConnectionStatus.WAITING

    ws.drop()
    await settle()
    snap = client.snapshot()
    assert snap.status is ConnectionStatus.CONNECTING
    assert snap.error_message == "Connection to game server lost"

    scheduler.advance(3.0)
    await settle()
    snap = client.snapshot()
    assert snap.status is ConnectionStatus.WAITING
    assert snap.error_message is None
    assert client.channels.channels_created == 2

    await client.stop()


@pytest.mark.asyncio
async def test_move_is_dropped_when_channel_is_gone(client, connector):
    client.start()
    await settle()
    connector.latest.push(GAME_START)
    await settle()
    await client.channels.stop()

    # the guard still engages even though nothing could be sent
    assert await client.submit_move(Move.PAPER) is True
    assert connector.latest.sent_messages == []
    assert client.snapshot().selected_move is Move.PAPER
    await client.stop()


@pytest.mark.asyncio
async def test_stop_cancels_result_timer(client, connector, scheduler):
    client.start()
    await settle()
    connector.latest.push(GAME_START)
    connector.latest.push(game_result("TIE"))
    await settle()
    assert client.snapshot().status is ConnectionStatus.RESULT

    await client.stop()

    assert scheduler.pending == 0
    assert connector.latest.closed


@pytest.mark.asyncio
async def test_listeners_receive_snapshots(client, connector):
    seen = []
    client.subscribe(seen.append)

    client.start()
    await settle()
    connector.latest.push(GAME_START)
    await settle()

    assert [s.status for s in seen] == [ConnectionStatus.WAITING, ConnectionStatus.PLAYING]
    await client.stop()


@pytest.mark.parametrize("line, move", [
    ("r", Move.ROCK),
    ("P", Move.PAPER),
    (" scissors ", Move.SCISSORS),
    ("ROCK", Move.ROCK),
    ("x", None),
    ("/quit", None),
])
def test_parse_move_input(line, move):
    assert parse_move_input(line) is move


def _render_text(state):
    console = Console(record=True, width=80)
    console.print(render_snapshot(state.snapshot()))
    return console.export_text()


def test_render_shows_error_and_result():
    state = SessionState(
        status=ConnectionStatus.RESULT,
        status_message="Opponent won!",
        selected_move=Move.ROCK,
        last_result=RoundResult(Winner.PLAYER2, Moves(Move.ROCK, Move.PAPER)),
        error_message="Error connecting to game server",
    )

    text = _render_text(state)

    assert "Error connecting to game server" in text
    assert "Opponent won!" in text
    assert "Your move" in text
    assert "PAPER" in text


def test_render_prompts_for_move_while_playing():
    state = SessionState(status=ConnectionStatus.PLAYING, status_message="Game started! Make your move.")

    assert "[r]ock" in _render_text(state)


def test_config_command_prints_resolved_values(tmp_path, monkeypatch):
    monkeypatch.delenv("RPS_SERVER", raising=False)
    path = tmp_path / "rps_client.yaml"
    path.write_text("endpoint: ws://table.example:9000\n", encoding="utf-8")

    result = CliRunner().invoke(app, ["config", "--config", str(path)])

    assert result.exit_code == 0
    assert "ws://table.example:9000" in result.output
    assert "reconnect_delay" in result.output


@pytest.mark.asyncio
async def test_failing_listener_does_not_stop_reconnect(client, connector, scheduler):
    def broken_renderer(snapshot):
        if snapshot.status is ConnectionStatus.CONNECTING:
            raise RuntimeError("render failed")

    client.subscribe(broken_renderer)
    client.start()
    await settle()

    connector.latest.drop()
    await settle()
    assert client.snapshot().status is ConnectionStatus.CONNECTING

    scheduler.advance(3.0)
    await settle()

    assert client.channels.channels_created == 2
    assert client.snapshot().status is ConnectionStatus.WAITING
    await client.stop()
