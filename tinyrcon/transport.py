# tinyrcon/transport.py
"""
Transport boundary: an authenticated RCON connection.

Packet framing and the login handshake are done by the ``rcon`` package; this
module only translates its failures into ConnectError / ConnectionClosedError /
CommandError.
"""
from __future__ import annotations

import logging
import socket
from typing import Callable, Protocol

from rcon.exceptions import EmptyResponse, SessionTimeout, WrongPassword
from rcon.source import Client

from .config import DEFAULT_TIMEOUT
from .errors import CommandError, ConnectError, ConnectionClosedError

log = logging.getLogger(__name__)

# socket errors that mean the peer is gone rather than a single bad exchange
_CLOSED_ERRORS = (EmptyResponse, EOFError, ConnectionError)


class Transport(Protocol):
    def send_command(self, command: str) -> str: ...

    def close(self) -> None: ...


Dial = Callable[[str, int, str], Transport]


class RconTransport:
    def __init__(self, client: Client, address: str) -> None:
        self._client = client
        self._address = address
        self._closed = False

    def send_command(self, command: str) -> str:
        if self._closed:
            raise ConnectionClosedError(f"connection to {self._address} is closed")
        try:
            return self._client.run(command)
        except _CLOSED_ERRORS as e:
            raise ConnectionClosedError(f"connection closed by {self._address}") from e
        except SessionTimeout as e:
            raise CommandError("response id does not match request") from e
        except UnicodeDecodeError as e:
            raise CommandError(f"response to {command!r} is not valid UTF-8: {e}") from e
        except ValueError as e:
            raise CommandError(f"malformed response packet: {e}") from e
        except socket.timeout as e:
            raise CommandError(f"timed out waiting for response to {command!r}") from e
        except OSError as e:
            raise CommandError(str(e) or type(e).__name__) from e

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._client.close()
        except OSError as e:
            log.debug("error while closing %s: %s", self._address, e)


def dial(host: str, port: int, password: str, *, timeout: float = DEFAULT_TIMEOUT) -> RconTransport:
    """Open and authenticate a connection, or raise ConnectError."""
    address = f"{host}:{port}"
    client = Client(host, port, timeout=timeout, passwd=password)
    try:
        client.connect(login=True)
    except WrongPassword as e:
        client.close()
        raise ConnectError(f"authentication to {address} failed: wrong password") from e
    except (OSError, EmptyResponse, EOFError) as e:
        client.close()
        raise ConnectError(f"can't connect to {address}: {str(e) or type(e).__name__}") from e
    log.debug("connected to %s", address)
    return RconTransport(client, address)


def dialer(timeout: float = DEFAULT_TIMEOUT) -> Dial:
    """Bind a socket timeout into a dial function."""

    def _dial(host: str, port: int, password: str) -> RconTransport:
        return dial(host, port, password, timeout=timeout)

    return _dial
