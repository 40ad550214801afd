import asyncio
import json
from typing import Any, Callable, List, Optional

import pytest
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK

_CLEAN_CLOSE = object()
_ERROR_CLOSE = object()


class FakeWebSocket:
    """Stands in for websockets.ClientConnection; the test plays the server."""

    def __init__(self) -> None:
        self.sent_messages: list[str] = []
        self.closed = False
        self.close_code: int | None = None
        self._inbox: asyncio.Queue = asyncio.Queue()

    async def send(self, data: str) -> None:
        if self.closed:
            raise ConnectionClosedOK(None, None)
        self.sent_messages.append(data)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed = True
        self.close_code = code
        self._inbox.put_nowait(_CLEAN_CLOSE)

    def push(self, frame: Any) -> None:
        if not isinstance(frame, (str, bytes)):
            frame = json.dumps(frame)
        self._inbox.put_nowait(frame)

    def drop(self) -> None:
        """Simulate the server vanishing without a close handshake."""
        self.closed = True
        self._inbox.put_nowait(_ERROR_CLOSE)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._inbox.get()
        if item is _CLEAN_CLOSE:
            raise StopAsyncIteration
        if item is _ERROR_CLOSE:
            raise ConnectionClosedError(None, None)
        return item


class FakeConnector:
    """Replacement for websockets.connect that hands out FakeWebSockets."""

    def __init__(self) -> None:
        self.sockets: List[FakeWebSocket] = []
        self.calls: List[tuple] = []
        self.failures = 0

    async def __call__(self, endpoint: str, **kwargs: Any) -> FakeWebSocket:
        self.calls.append((endpoint, kwargs))
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionRefusedError("connection refused")
        ws = FakeWebSocket()
        self.sockets.append(ws)
        return ws

    @property
    def latest(self) -> FakeWebSocket:
        return self.sockets[-1]


class ManualTimer:
    def __init__(self, when: float, callback: Callable[..., Any], args: tuple, name: str) -> None:
        self.when = when
        self.callback = callback
        self.args = args
        self.name = name
        self.cancelled = False
        self.fired = False

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        if self.pending:
            self.cancelled = True


class ManualScheduler:
    """Scheduler whose clock only moves when the test calls advance()."""

    def __init__(self) -> None:
        self.now = 0.0
        self.timers: List[ManualTimer] = []

    @property
    def pending(self) -> int:
        return sum(1 for t in self.timers if t.pending)

    def pending_named(self, name: str) -> List[ManualTimer]:
        return [t for t in self.timers if t.pending and t.name == name]

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any, name: str = "") -> ManualTimer:
        timer = ManualTimer(self.now + delay, callback, args, name)
        self.timers.append(timer)
        return timer

    def cancel(self, task: Optional[ManualTimer]) -> None:
        if task is not None:
            task.cancel()

    def cancel_all(self) -> None:
        for timer in self.timers:
            timer.cancel()

    def advance(self, seconds: float) -> None:
        self.now += seconds
        while True:
            due = [t for t in self.timers if t.pending and t.when <= self.now]
            if not due:
                return
            timer = min(due, key=lambda t: t.when)
            timer.fired = True
            timer.callback(*timer.args)


class RecordingSender:
    def __init__(self) -> None:
        self.payloads: List[str] = []

    async def __call__(self, payload: str) -> bool:
        self.payloads.append(payload)
        return True


class SignalRecorder:
    """Collects channel manager callbacks in order."""

    def __init__(self) -> None:
        self.signals: List[tuple] = []

    def on_opened(self) -> None:
        self.signals.append(("opened",))

    def on_closed(self) -> None:
        self.signals.append(("closed",))

    def on_message(self, raw: str) -> None:
        self.signals.append(("message", raw))

    def on_error(self, exc: BaseException) -> None:
        self.signals.append(("error", exc))

    def names(self) -> List[str]:
        return [s[0] for s in self.signals]


async def settle(rounds: int = 5) -> None:
    """Let tasks created by callbacks run until they block."""
    for _ in range(rounds):
        await asyncio.sleep(0)


GAME_START = {"type": "GAME_START"}


def game_result(winner: str = "TIE", player1: str = "ROCK", player2: str = "ROCK") -> dict:
    return {"type": "GAME_RESULT", "winner": winner, "moves": {"player1": player1, "player2": player2}}


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def recorder() -> SignalRecorder:
    return SignalRecorder()
