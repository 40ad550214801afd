from __future__ import annotations
import asyncio
from contextlib import suppress
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import websockets

from rps_shared.log import get_logger
from .timers import ScheduledTask, Scheduler

logger = get_logger(__name__)


RECONNECT_DELAY = 3.0

ConnectFactory = Callable[..., Awaitable[Any]]


class ChannelState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class Channel:
    """One transport attempt to the game server. Never reopened once closed."""

    def __init__(self, channel_id: int, endpoint: str) -> None:
        self.id = channel_id
        self.endpoint = endpoint
        self.state = ChannelState.CONNECTING
        self.websocket: Optional[websockets.ClientConnection] = None
        self.error: Optional[BaseException] = None

    @property
    def is_open(self) -> bool:
        return self.state is ChannelState.OPEN and self.websocket is not None

    def __repr__(self) -> str:
        return f"<Channel {self.id} {self.state.value} {self.endpoint}>"


class ChannelManager:
    """
    Keeps exactly one live Channel to the game server.

    Lifecycle changes are reported through ``on_opened``, ``on_closed`` and
    ``on_error``; every inbound text frame goes to ``on_message``. Whenever a
    channel closes, for whatever reason, a replacement is created after
    ``reconnect_delay`` seconds. There is no backoff growth and no retry cap.
    """

    def __init__(
        self,
        on_opened: Callable[[], None],
        on_closed: Callable[[], None],
        on_message: Callable[[str], None],
        on_error: Optional[Callable[[BaseException], None]] = None,
        *,
        scheduler: Optional[Scheduler] = None,
        reconnect_delay: float = RECONNECT_DELAY,
        connect: Optional[ConnectFactory] = None,
        ping_interval: Optional[float] = 15.0,
        ping_timeout: Optional[float] = 45.0,
    ) -> None:
        self._on_opened = on_opened
        self._on_closed = on_closed
        self._on_message = on_message
        self._on_error = on_error
        self._scheduler = scheduler or Scheduler()
        self._connect = connect or websockets.connect
        self.reconnect_delay = reconnect_delay
        self.ping_interval = ping_interval
        self.ping_timeout = ping_timeout

        self.endpoint: Optional[str] = None
        self.channel: Optional[Channel] = None
        self.channels_created = 0
        self.last_error: Optional[str] = None

        self._reader: Optional[asyncio.Task] = None
        self._reconnect: Optional[ScheduledTask] = None
        self._stopped = True

    @property
    def is_open(self) -> bool:
        return self.channel is not None and self.channel.is_open

    # ==================== lifecycle ====================

    def start(self, endpoint: str) -> None:
        """Open the first channel to ``endpoint``. Must run inside an event loop."""
        self.endpoint = endpoint
        self._stopped = False
        self._open_channel()

    async def stop(self) -> None:
        """Cancel the pending reconnect and close the live channel. No callbacks fire afterwards."""
        self._stopped = True
        self._scheduler.cancel(self._reconnect)
        self._reconnect = None

        reader, self._reader = self._reader, None
        if reader is not None and not reader.done():
            reader.cancel()
            with suppress(asyncio.CancelledError):
                await reader

        channel = self.channel
        if channel is not None:
            if channel.websocket is not None:
                try:
                    await channel.websocket.close(code=1000)
                except Exception as e:
                    logger.error(f"Error closing channel {channel.id}: {e}")
            channel.state = ChannelState.CLOSED
        logger.info("Channel manager stopped")

    def _open_channel(self) -> None:
        self._reconnect = None
        if self._stopped:
            return
        self.channels_created += 1
        channel = Channel(self.channels_created, self.endpoint)
        self.channel = channel
        logger.info("Connecting to %s", channel.endpoint, extra={"channel_id": channel.id})
        self._reader = asyncio.create_task(self._run(channel), name=f"rps-channel-{channel.id}")

    def _schedule_reconnect(self) -> None:
        logger.info(f"Reconnecting in {self.reconnect_delay}s")
        self._reconnect = self._scheduler.call_later(
            self.reconnect_delay, self._open_channel, name="reconnect"
        )

    # ==================== reader ====================

    async def _run(self, channel: Channel) -> None:
        try:
            await self._pump(channel)
        except asyncio.CancelledError:
            channel.state = ChannelState.CLOSED
            raise
        except Exception as e:
            channel.error = e
            self.last_error = str(e) or e.__class__.__name__
            logger.warning(f"Channel {channel.id} failed: {self.last_error}")

        channel.state = ChannelState.CLOSED
        if channel.websocket is not None:
            # A callback may have failed while the socket was still up
            with suppress(Exception):
                await channel.websocket.close(code=1000)
        if self._stopped:
            return
        logger.info("Channel closed", extra={"channel_id": channel.id})
        try:
            if channel.error is not None and self._on_error is not None:
                self._signal(self._on_error, channel.error)
            self._signal(self._on_closed)
        finally:
            self._schedule_reconnect()

    def _signal(self, callback: Callable[..., None], *args: Any) -> None:
        try:
            callback(*args)
        except Exception:
            logger.exception("Channel callback %r failed", callback)

    async def _pump(self, channel: Channel) -> None:
        channel.websocket = await self._connect(
            channel.endpoint,
            ping_interval=self.ping_interval,
            ping_timeout=self.ping_timeout,
        )
        channel.state = ChannelState.OPEN
        self.last_error = None
        logger.info("Channel open", extra={"channel_id": channel.id})
        self._on_opened()

        # Ends quietly on a clean close, raises ConnectionClosedError otherwise
        async for raw in channel.websocket:
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8", errors="replace")
            try:
                self._on_message(raw)
            except Exception as e:
                logger.error(f"Failed to process inbound frame: {e}", extra={"channel_id": channel.id})

    # ==================== outbound ====================

    async def send(self, payload: str) -> bool:
        """Send ``payload`` verbatim if a channel is open; otherwise drop it."""
        channel = self.channel
        if channel is None or not channel.is_open:
            logger.debug("No open channel; dropping outbound frame")
            return False
        try:
            await channel.websocket.send(payload)
        except websockets.exceptions.ConnectionClosed:
            logger.warning("Channel closed while sending", extra={"channel_id": channel.id})
            return False
        except Exception as e:
            logger.error(f"Error sending frame: {e}", extra={"channel_id": channel.id})
            return False
        return True
