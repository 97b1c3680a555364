# tinyrcon/session.py
"""
Session core: one logical RCON connection, including any reconnects.

A Session exclusively owns its Transport. When the peer drops the connection
the dead transport is closed and a bounded number of fresh dials is attempted;
if they all fail the session is TERMINATED and refuses further work.
Not thread-safe: callers serialise access.
"""
from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .config import ConnectionConfig
from .errors import ConnectError, ConnectionClosedError, SessionTerminatedError
from .transport import Dial, Transport, dialer

log = logging.getLogger(__name__)


class SessionState(enum.Enum):
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    RECONNECTING = "reconnecting"
    TERMINATED = "terminated"


@dataclass(frozen=True)
class CommandResult:
    text: str

    @property
    def is_empty(self) -> bool:
        return self.text == ""


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    interval: float = 5.0


class Session:
    def __init__(
        self,
        config: ConnectionConfig,
        transport: Transport,
        *,
        dial: Optional[Dial] = None,
        retry: RetryPolicy = RetryPolicy(),
        sleep: Callable[[float], None] = time.sleep,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config
        self.retry = retry
        self._transport: Optional[Transport] = transport
        self._dial = dial or dialer()
        self._sleep = sleep
        self._log = logger or log
        self.state = SessionState.CONNECTED

    @classmethod
    def start(
        cls,
        config: ConnectionConfig,
        *,
        dial: Optional[Dial] = None,
        retry: RetryPolicy = RetryPolicy(),
        sleep: Callable[[float], None] = time.sleep,
        logger: Optional[logging.Logger] = None,
    ) -> "Session":
        """Dial once; a failed first connection is not retried."""
        dial = dial or dialer()
        logger = logger or log
        logger.info("starting session with %s", config.address)
        try:
            transport = dial(config.host, config.port, config.password)
        except ConnectError as e:
            logger.error("can't connect to server: %s", e)
            raise
        return cls(config, transport, dial=dial, retry=retry, sleep=sleep, logger=logger)

    # --- context manager ---------------------------------------------------

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # --- commands ----------------------------------------------------------

    @property
    def terminated(self) -> bool:
        return self.state is SessionState.TERMINATED

    def send_command(self, text: str) -> CommandResult:
        if self.terminated or self._transport is None:
            raise SessionTerminatedError()
        if text == "":
            return CommandResult("")

        try:
            response = self._transport.send_command(text)
        except ConnectionClosedError as e:
            self._log.error("connection closed, reconnecting...")
            self._reconnect(e)
            raise
        # any other CommandError propagates with the session left CONNECTED

        if response == "":
            self._log.debug("no response to %r", text)
        return CommandResult(response)

    def _reconnect(self, cause: ConnectionClosedError) -> None:
        self.state = SessionState.RECONNECTING
        self._drop_transport()

        last_error: Optional[ConnectError] = None
        for attempt in range(1, self.retry.max_attempts + 1):
            self._log.info(
                "retry %d/%d, reconnecting in %g seconds...",
                attempt,
                self.retry.max_attempts,
                self.retry.interval,
            )
            self._sleep(self.retry.interval)
            try:
                transport = self._dial(self.config.host, self.config.port, self.config.password)
            except ConnectError as e:
                self._log.warning("reconnect attempt %d failed: %s", attempt, e)
                last_error = e
                continue
            self._transport = transport
            self.state = SessionState.CONNECTED
            self._log.info("reconnected to %s", self.config.address)
            return

        self.state = SessionState.TERMINATED
        self._log.error("can't reconnect to %s, giving up", self.config.address)
        if last_error is None:
            last_error = ConnectError(f"no reconnect attempts allowed for {self.config.address}")
        raise last_error from cause

    def _drop_transport(self) -> None:
        transport, self._transport = self._transport, None
        if transport is not None:
            transport.close()

    def close(self) -> None:
        """Idempotent; the session cannot be used afterwards."""
        if self.terminated and self._transport is None:
            return
        self.state = SessionState.TERMINATED
        self._drop_transport()
        self._log.debug("session with %s closed", self.config.address)
