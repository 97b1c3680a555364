"""Shared fakes: scripted transports and dial functions, no network."""

import logging

import pytest

from tinyrcon.config import ConnectionConfig
from tinyrcon.errors import ConnectError
from tinyrcon.session import RetryPolicy, Session


class FakeTransport:
    """Answers commands from a script of strings / exceptions (default: echo)."""

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.sent = []
        self.close_calls = 0

    def send_command(self, command):
        self.sent.append(command)
        if not self.replies:
            return f"ok: {command}"
        reply = self.replies.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply

    def close(self):
        self.close_calls += 1

    @property
    def closed(self):
        return self.close_calls > 0


class FakeDial:
    """Dial function returning scripted transports or raising scripted errors."""

    def __init__(self, outcomes=None):
        self.outcomes = list(outcomes or [])
        self.calls = []

    def __call__(self, host, port, password):
        self.calls.append((host, port, password))
        outcome = self.outcomes.pop(0) if self.outcomes else FakeTransport()
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger = logging.getLogger("tinyrcon")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def config():
    return ConnectionConfig(host="127.0.0.1", port=25575, password="secret")


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_session(config, sleeps):
    def _make(transport=None, reconnects=None, retry=RetryPolicy()):
        transport = transport or FakeTransport()
        dial = FakeDial(reconnects)
        session = Session(config, transport, dial=dial, retry=retry, sleep=sleeps.append)
        return session, transport, dial

    return _make


@pytest.fixture
def refused():
    return ConnectError("can't connect to 127.0.0.1:25575: connection refused")
