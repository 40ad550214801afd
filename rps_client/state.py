from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from rps_shared.models import Move, RoundResult


CONNECTING_MESSAGE = "Connecting to game server..."


class ConnectionStatus(str, Enum):
    """Coarse position of the client in the round lifecycle."""
    CONNECTING = "connecting"
    WAITING = "waiting"
    PLAYING = "playing"
    RESULT = "result"


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only copy of the session handed to renderers and listeners."""
    status: ConnectionStatus
    status_message: str
    selected_move: Optional[Move]
    last_result: Optional[RoundResult]
    error_message: Optional[str]

    @property
    def can_move(self) -> bool:
        return self.status is ConnectionStatus.PLAYING and self.selected_move is None


@dataclass
class SessionState:
    status: ConnectionStatus = ConnectionStatus.CONNECTING
    status_message: str = CONNECTING_MESSAGE
    selected_move: Optional[Move] = None
    last_result: Optional[RoundResult] = None
    error_message: Optional[str] = None

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            status=self.status,
            status_message=self.status_message,
            selected_move=self.selected_move,
            last_result=self.last_result,
            error_message=self.error_message,
        )
