"""
Events the session state machine reacts to.

Channel signals (Opened, Closed, ChannelError) come from the channel manager,
GameStart / GameResult / Unknown are decoded from inbound frames and
ResultExpired is raised by the Result phase timer. ``Event`` is the closed
union of all of them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Union

from rps_shared.models import RoundResult


@dataclass(frozen=True)
class Opened:
    pass


@dataclass(frozen=True)
class Closed:
    pass


@dataclass(frozen=True)
class ChannelError:
    detail: str = ""


@dataclass(frozen=True)
class GameStart:
    pass


@dataclass(frozen=True)
class GameResult:
    result: RoundResult


@dataclass(frozen=True)
class Unknown:
    type: str
    data: Dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class ResultExpired:
    pass


Event = Union[Opened, Closed, ChannelError, GameStart, GameResult, Unknown, ResultExpired]
