from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


class Move(str, Enum):
    """The three hands a player can throw."""

    ROCK = "ROCK"
    PAPER = "PAPER"
    SCISSORS = "SCISSORS"

    @classmethod
    def from_string(cls, value: Union[str, "Move"]) -> Move:
        """Convert a move name (any case) to Move, raise ValueError if unknown."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown move: {value!r}")

    @classmethod
    def is_valid(cls, value: str) -> bool:
        """Check if string is an exact wire move name."""
        try:
            cls(value)
            return True
        except ValueError:
            return False


class Winner(str, Enum):
    """Round outcome as reported by the server, from player 1's seat."""

    PLAYER1 = "PLAYER1"
    PLAYER2 = "PLAYER2"
    TIE = "TIE"


@dataclass(frozen=True)
class Moves:
    player1: Move
    player2: Move


@dataclass(frozen=True)
class RoundResult:
    """One GAME_RESULT announcement. Player 1 is always the local player."""

    winner: Winner
    moves: Moves

    @property
    def own_move(self) -> Move:
        return self.moves.player1

    @property
    def opponent_move(self) -> Move:
        return self.moves.player2


def result_message(result: RoundResult) -> str:
    """Status line shown once a round has been decided."""
    if result.winner is Winner.TIE:
        return "It's a tie!"
    if result.winner is Winner.PLAYER1:
        return "You won! \U0001F389"
    return "Opponent won!"
