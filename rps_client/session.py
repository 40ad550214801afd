from __future__ import annotations
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, Union

from rps_shared.errors import ProtocolError
from rps_shared.events import (
    ChannelError,
    Closed,
    Event,
    GameResult,
    GameStart,
    Opened,
    ResultExpired,
    Unknown,
)
from rps_shared.log import get_logger
from rps_shared.models import Move, result_message
from rps_shared.protocol import decode_event, encode_move

from .state import ConnectionStatus, SessionSnapshot, SessionState
from .timers import ScheduledTask, Scheduler

logger = get_logger(__name__)


RESULT_DISPLAY_DELAY = 3.0

WAITING_FOR_OPPONENT = "Waiting for opponent..."
CONNECTION_LOST = "Connection lost. Reconnecting..."
GAME_STARTED = "Game started! Make your move."
WAITING_FOR_NEXT_GAME = "Waiting for next game..."

CONNECTION_LOST_ERROR = "Connection to game server lost"
CONNECTION_ERROR = "Error connecting to game server"


Sender = Callable[[str], Awaitable[Any]]
Listener = Callable[[SessionSnapshot], None]


class SessionStateMachine:
    """
    Client-side phase tracker for one player.

    Owns a SessionState and is the only thing that mutates it. Channel
    signals and decoded frames are turned into events and run through a
    transition table keyed by event type. The single outbound action, a
    move submission, goes through ``send``.
    """

    def __init__(
        self,
        send: Optional[Sender] = None,
        *,
        state: Optional[SessionState] = None,
        scheduler: Optional[Scheduler] = None,
        result_delay: float = RESULT_DISPLAY_DELAY,
    ) -> None:
        self.state = state if state is not None else SessionState()
        self.result_delay = result_delay
        self._send = send
        self._scheduler = scheduler or Scheduler()
        self._phase_timer: Optional[ScheduledTask] = None
        self._listeners: List[Listener] = []
        self._transitions: Dict[Type[Any], Callable[[Any], None]] = {
            Opened: self._on_opened,
            Closed: self._on_closed,
            ChannelError: self._on_channel_error,
            GameStart: self._on_game_start,
            GameResult: self._on_game_result,
            ResultExpired: self._on_result_expired,
            Unknown: self._on_unknown,
        }

    # ==================== observers ====================

    def snapshot(self) -> SessionSnapshot:
        return self.state.snapshot()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` with a fresh snapshot after every state change."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Session listener %r failed", listener)

    # ==================== channel signals ====================

    def on_opened(self) -> None:
        self.dispatch(Opened())

    def on_closed(self) -> None:
        self.dispatch(Closed())

    def on_error(self, exc: Optional[BaseException] = None) -> None:
        self.dispatch(ChannelError(detail=str(exc) if exc is not None else ""))

    def on_message(self, raw: Union[str, bytes]) -> None:
        """Decode one inbound frame. Malformed frames are logged and dropped."""
        try:
            event = decode_event(raw)
        except ProtocolError as e:
            logger.warning("Discarding malformed frame: %s", e)
            return
        self.dispatch(event)

    # ==================== transitions ====================

    def dispatch(self, event: Event) -> None:
        handler = self._transitions.get(type(event))
        if handler is None:
            raise TypeError(f"Unsupported event: {event!r}")
        before = self.state.snapshot()
        handler(event)
        if self.state.snapshot() != before:
            logger.debug("Session is now %s: %s", self.state.status.value, self.state.status_message)
            self._notify()

    def _enter(self, status: ConnectionStatus, message: str) -> None:
        # Phase timers belong to the phase that armed them
        self._scheduler.cancel(self._phase_timer)
        self._phase_timer = None
        self.state.status = status
        self.state.status_message = message
        self.state.error_message = None

    def _on_opened(self, event: Opened) -> None:
        if self.state.status is not ConnectionStatus.CONNECTING:
            logger.debug("Ignoring open signal while %s", self.state.status.value)
            return
        self._enter(ConnectionStatus.WAITING, WAITING_FOR_OPPONENT)

    def _on_closed(self, event: Closed) -> None:
        self._enter(ConnectionStatus.CONNECTING, CONNECTION_LOST)
        self.state.selected_move = None
        self.state.last_result = None
        self.state.error_message = CONNECTION_LOST_ERROR

    def _on_channel_error(self, event: ChannelError) -> None:
        logger.error("Channel error: %s", event.detail or "unknown")
        self.state.error_message = CONNECTION_ERROR

    def _on_game_start(self, event: GameStart) -> None:
        if self.state.status not in (ConnectionStatus.WAITING, ConnectionStatus.RESULT):
            logger.warning("Ignoring GAME_START while %s", self.state.status.value)
            return
        self._enter(ConnectionStatus.PLAYING, GAME_STARTED)
        self.state.selected_move = None
        self.state.last_result = None

    def _on_game_result(self, event: GameResult) -> None:
        if self.state.status is not ConnectionStatus.PLAYING:
            logger.warning("Ignoring GAME_RESULT while %s", self.state.status.value)
            return
        self._enter(ConnectionStatus.RESULT, result_message(event.result))
        self.state.last_result = event.result
        self._phase_timer = self._scheduler.call_later(
            self.result_delay, self.dispatch, ResultExpired(), name="result-reset"
        )

    def _on_result_expired(self, event: ResultExpired) -> None:
        if self.state.status is not ConnectionStatus.RESULT:
            return
        self._enter(ConnectionStatus.WAITING, WAITING_FOR_NEXT_GAME)
        self.state.last_result = None
        self.state.selected_move = None

    def _on_unknown(self, event: Unknown) -> None:
        logger.info("Unknown message type: %s", event.type, extra={"msg_type": event.type})

    # ==================== outbound ====================

    async def submit_move(self, move: Union[Move, str]) -> bool:
        """
        Pick this round's move and send it to the server.

        Only the first call during a Playing phase has any effect; later
        calls, or calls outside Playing, return False without sending.
        """
        move = Move.from_string(move)
        if self.state.status is not ConnectionStatus.PLAYING or self.state.selected_move is not None:
            logger.debug("Rejected move %s while %s", move.value, self.state.status.value)
            return False

        self.state.selected_move = move
        self.state.status_message = WAITING_FOR_OPPONENT
        self._notify()

        if self._send is None:
            logger.warning("No channel attached; move %s not sent", move.value)
        else:
            await self._send(encode_move(move))
        logger.info("Submitted move %s", move.value)
        return True

    # ==================== lifecycle ====================

    def close(self) -> None:
        self._scheduler.cancel(self._phase_timer)
        self._phase_timer = None

    def reset(self) -> None:
        self.close()
        self.state = SessionState()
        self._notify()
