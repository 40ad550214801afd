from __future__ import annotations

from enum import Enum
import json
from typing import Any, Dict, Union

from rps_shared.errors import MalformedFrameError
from rps_shared.events import Event, GameResult, GameStart, Unknown
from rps_shared.models import Move, Moves, RoundResult, Winner


class MessageType(str, Enum):
    """Inbound frame types pushed by the game server."""

    GAME_START = "GAME_START"
    GAME_RESULT = "GAME_RESULT"

    @classmethod
    def is_valid(cls, value: str) -> bool:
        """Check if string is a known message type."""
        try:
            cls(value)
            return True
        except ValueError:
            return False


class ClientAction(str, Enum):
    """Outbound actions. Moves are the only thing a client ever sends."""

    MOVE = "move"


def _dumps(data: Dict[str, Any]) -> str:
    return json.dumps(data, separators=(',', ':'), sort_keys=True)


def encode_move(move: Move) -> str:
    """Build the move-submission frame: {"action":"move","move":"ROCK"}"""
    return _dumps({"action": ClientAction.MOVE.value, "move": Move.from_string(move).value})


def decode_event(raw: Union[str, bytes]) -> Event:
    """
    Turn one inbound frame into an event.

    Frames whose type is not a known MessageType decode to ``Unknown``.
    Raises MalformedFrameError for anything that is not a JSON object with a
    string ``type`` or a GAME_RESULT with missing/invalid fields.
    """
    try:
        data = json.loads(raw)
    except (ValueError, TypeError, RecursionError) as e:
        raise MalformedFrameError(f"Invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedFrameError("Frame must be a JSON object")

    msg_type = data.get("type")
    if not isinstance(msg_type, str):
        raise MalformedFrameError("'type' must be a string")

    if not MessageType.is_valid(msg_type):
        return Unknown(type=msg_type, data=data)

    if MessageType(msg_type) is MessageType.GAME_START:
        return GameStart()
    return GameResult(result=parse_round_result(data))


def parse_round_result(data: Dict[str, Any]) -> RoundResult:
    """Validate the GAME_RESULT fields: winner and moves.player1/player2"""
    winner = data.get("winner")
    try:
        winner = Winner(winner)
    except ValueError:
        raise MalformedFrameError(f"Invalid 'winner': {winner!r}")

    moves = data.get("moves")
    if not isinstance(moves, dict):
        raise MalformedFrameError("'moves' must be an object")

    parsed = {}
    for seat in ("player1", "player2"):
        value = moves.get(seat)
        if not isinstance(value, str) or not Move.is_valid(value):
            raise MalformedFrameError(f"Invalid move for {seat}: {value!r}")
        parsed[seat] = Move(value)

    return RoundResult(winner=winner, moves=Moves(**parsed))
