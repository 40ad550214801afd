#!/usr/bin/env python3
"""
RPS Client

Wires one ChannelManager to one SessionStateMachine for a single endpoint.
The terminal front end and tests talk to this object only.
"""

from __future__ import annotations
from typing import Callable, Optional, Union

from rps_shared.log import get_logger
from rps_shared.models import Move

from .channel import ChannelManager, ConnectFactory
from .config import ClientConfig
from .session import Listener, SessionStateMachine
from .state import SessionSnapshot
from .timers import Scheduler

logger = get_logger(__name__)


class GameClient:

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        scheduler: Optional[Scheduler] = None,
        connect: Optional[ConnectFactory] = None,
    ) -> None:
        self.config = config or ClientConfig()
        self.scheduler = scheduler or Scheduler()
        self.session = SessionStateMachine(
            self._send,
            scheduler=self.scheduler,
            result_delay=self.config.result_delay,
        )
        self.channels = ChannelManager(
            on_opened=self.session.on_opened,
            on_closed=self.session.on_closed,
            on_message=self.session.on_message,
            on_error=self.session.on_error,
            scheduler=self.scheduler,
            reconnect_delay=self.config.reconnect_delay,
            connect=connect,
            ping_interval=self.config.ping_interval,
            ping_timeout=self.config.ping_timeout,
        )

    async def _send(self, payload: str) -> bool:
        return await self.channels.send(payload)

    def start(self) -> None:
        logger.info(f"Starting RPS client against {self.config.endpoint}")
        self.channels.start(self.config.endpoint)

    async def stop(self) -> None:
        await self.channels.stop()
        self.session.close()
        self.scheduler.cancel_all()

    async def submit_move(self, move: Union[Move, str]) -> bool:
        return await self.session.submit_move(move)

    def snapshot(self) -> SessionSnapshot:
        return self.session.snapshot()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self.session.subscribe(listener)
