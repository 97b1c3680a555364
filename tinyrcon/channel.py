# tinyrcon/channel.py
"""
Queue-fed driver for embedding the client in an asyncio application.

Commands arrive on an inbound asyncio.Queue and status/result lines are
published to an outbound one. An empty string stops the driver cleanly; the
CLOSED marker signals that the producer went away.

Outbound writes use ``await put()``: an unbounded queue never blocks, a bounded
one makes the driver wait for the consumer.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .config import ConnectionConfig
from .errors import ChannelClosedError, RconError
from .session import Session
from .transport import Dial

log = logging.getLogger(__name__)

STOP = ""


class _Closed:
    def __repr__(self) -> str:
        return "CLOSED"


CLOSED = _Closed()


def sent_message(command: str) -> str:
    return f'command: "{command}" sent!'


def failed_message(error: BaseException) -> str:
    return f"exec failed: {error}"


EMPTY_MESSAGE = "response is empty!"


class ChannelDriver:
    def __init__(self, session: Session, inbound: asyncio.Queue, outbound: asyncio.Queue) -> None:
        self.session = session
        self.inbound = inbound
        self.outbound = outbound

    async def run(self) -> None:
        try:
            await self._loop()
        finally:
            await asyncio.to_thread(self.session.close)

    async def _loop(self) -> None:
        while True:
            item = await self.inbound.get()
            if item is CLOSED:
                err = ChannelClosedError()
                log.error("chan err: %s", err)
                raise err
            if item == STOP:
                log.info("stop sentinel received, closing session")
                return

            command = str(item)
            try:
                result = await asyncio.to_thread(self.session.send_command, command)
            except RconError as e:
                log.error("can't send command %r: %s", command, e)
                await self.outbound.put(failed_message(e))
                if self.session.terminated:
                    raise
                continue

            await self.outbound.put(sent_message(command))
            await self.outbound.put(result.text)
            if result.is_empty:
                await self.outbound.put(EMPTY_MESSAGE)


async def run_channel(
    config: ConnectionConfig,
    inbound: asyncio.Queue,
    outbound: asyncio.Queue,
    *,
    dial: Optional[Dial] = None,
) -> None:
    """Connect, then serve commands from ``inbound`` until STOP or CLOSED."""
    session = await asyncio.to_thread(Session.start, config, dial=dial)
    await ChannelDriver(session, inbound, outbound).run()
