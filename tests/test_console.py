"""Tests for the interactive console driver."""

import io
import logging
import threading

from unittest.mock import MagicMock

import pytest

from conftest import FakeDial, FakeTransport
from tinyrcon.transport import RconTransport
from tinyrcon.console import (
    MAX_LINE,
    Console,
    cancel_on_sigterm,
    run_console,
    stream_reader,
)
from tinyrcon.errors import CommandError, ConnectError, ConnectionClosedError, InputTooLongError


def scripted(items):
    """Line reader yielding strings / raising exceptions, then EOF."""
    items = list(items)
    prompts = []

    def read(prompt):
        prompts.append(prompt)
        if not items:
            raise EOFError
        item = items.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item

    read.prompts = prompts
    return read


def make_console(make_session, lines, transport=None, reconnects=None):
    session, transport, dial = make_session(transport, reconnects=reconnects)
    out = io.StringIO()
    console = Console(session, stream_reader(io.StringIO(lines)), out=out)
    return console, transport, out


class TestConsoleLoop:
    def test_help_blank_exit(self, make_session):
        console, transport, out = make_console(make_session, "help\n\nexit\n")
        console.run()
        assert transport.sent == ["help"]
        assert out.getvalue() == "ok: help\n\n"
        assert transport.closed

    def test_stop_is_like_exit(self, make_session):
        console, transport, out = make_console(make_session, "stop\nlist\n")
        console.run()
        assert transport.sent == []
        assert out.getvalue() == ""
        assert transport.closed

    def test_exit_tokens_are_case_sensitive(self, make_session):
        console, transport, _ = make_console(make_session, "EXIT\nStop\nexit\n")
        console.run()
        assert transport.sent == ["EXIT", "Stop"]

    def test_eof_is_clean_exit(self, make_session):
        console, transport, _ = make_console(make_session, "list")
        console.run()
        assert transport.sent == ["list"]
        assert transport.closed

    def test_windows_newlines_are_stripped(self, make_session):
        console, transport, _ = make_console(make_session, "list\r\nexit\r\n")
        console.run()
        assert transport.sent == ["list"]

    def test_empty_response_logs_notice(self, make_session, caplog):
        console, _, out = make_console(make_session, "save-all\n", transport=FakeTransport([""]))
        with caplog.at_level(logging.INFO, logger="tinyrcon"):
            console.run()
        assert out.getvalue() == ""
        assert "no response." in caplog.text

    def test_command_error_keeps_prompting(self, make_session, caplog):
        transport = FakeTransport([CommandError("Unknown command"), "pong"])
        console, _, out = make_console(make_session, "bogus\nping\n", transport=transport)
        with caplog.at_level(logging.ERROR, logger="tinyrcon"):
            console.run()
        assert transport.sent == ["bogus", "ping"]
        assert out.getvalue() == "pong\n"
        assert "Unknown command" in caplog.text

    def test_reconnect_success_keeps_prompting(self, make_session):
        new = FakeTransport(["back"])
        console, old, out = make_console(
            make_session,
            "list\nlist\n",
            transport=FakeTransport([ConnectionClosedError("gone")]),
            reconnects=[new],
        )
        console.run()
        assert old.sent == ["list"]
        assert new.sent == ["list"]
        assert out.getvalue() == "back\n"

    def test_terminated_session_exits(self, make_session, refused):
        console, old, _ = make_console(
            make_session,
            "list\nlist\nlist\n",
            transport=FakeTransport([ConnectionClosedError("gone")]),
            reconnects=[refused, refused, refused],
        )
        console.run()
        assert old.sent == ["list"]
        assert console.session.terminated

    def test_prompt_shows_address(self, make_session):
        session, _, _ = make_session()
        read = scripted(["exit"])
        Console(session, read, out=io.StringIO()).run()
        assert read.prompts == ["127.0.0.1:25575> "]


    def test_undecodable_response_keeps_prompting(self, make_session, caplog):
        client = MagicMock()
        client.run.side_effect = [
            UnicodeDecodeError("utf-8", b"\xa7aHello \xff", 0, 1, "invalid start byte"),
            "There are 0 players online",
        ]
        transport = RconTransport(client, "127.0.0.1:25575")
        console, _, out = make_console(make_session, "list\nlist\nexit\n", transport=transport)
        with caplog.at_level(logging.ERROR, logger="tinyrcon"):
            console.run()
        assert client.run.call_count == 2
        assert out.getvalue() == "There are 0 players online\n"
        assert "not valid UTF-8" in caplog.text
        client.close.assert_called_once()


class TestConsoleInterrupts:
    def test_interrupt_during_command_is_clean_exit(self, make_session):
        session, transport, _ = make_session(FakeTransport([KeyboardInterrupt()]))
        out = io.StringIO()
        read = scripted(["list", "never"])
        Console(session, read, out=out).run()
        assert transport.sent == ["list"]
        assert len(read.prompts) == 1
        assert "Caught ^C, exiting..." in out.getvalue()
        assert transport.closed

    def test_interrupt_is_clean_exit(self, make_session):
        session, transport, _ = make_session()
        out = io.StringIO()
        Console(session, scripted(["list", KeyboardInterrupt(), "never"]), out=out).run()
        assert transport.sent == ["list"]
        assert "Caught ^C, exiting..." in out.getvalue()
        assert transport.closed

    def test_cancel_checked_before_prompt(self, make_session):
        session, transport, _ = make_session()
        cancel = threading.Event()
        cancel.set()
        read = scripted(["list"])
        Console(session, read, out=io.StringIO(), cancel=cancel).run()
        assert read.prompts == []
        assert transport.sent == []
        assert transport.closed

    def test_read_errors_are_not_fatal(self, make_session, caplog):
        session, transport, _ = make_session()
        read = scripted([OSError("bad fd"), InputTooLongError(MAX_LINE + 1, MAX_LINE), "list"])
        with caplog.at_level(logging.ERROR, logger="tinyrcon"):
            Console(session, read, out=io.StringIO()).run()
        assert transport.sent == ["list"]
        assert "can't read input" in caplog.text
        assert "input too long" in caplog.text

    def test_sigterm_handler_is_restored(self):
        import signal

        before = signal.getsignal(signal.SIGTERM)
        cancel = threading.Event()
        with cancel_on_sigterm(cancel):
            handler = signal.getsignal(signal.SIGTERM)
            handler(signal.SIGTERM, None)
        assert cancel.is_set()
        assert signal.getsignal(signal.SIGTERM) == before


class TestStreamReader:
    def test_strips_newline(self):
        read = stream_reader(io.StringIO("say hi\n"))
        assert read("> ") == "say hi"
        with pytest.raises(EOFError):
            read("> ")

    def test_oversized_line_is_skipped(self):
        read = stream_reader(io.StringIO("x" * 25 + "\nlist\n"), limit=10)
        with pytest.raises(InputTooLongError):
            read("> ")
        assert read("> ") == "list"

    def test_line_at_limit_is_accepted(self):
        read = stream_reader(io.StringIO("x" * 10 + "\n"), limit=10)
        assert read("> ") == "x" * 10


class TestRunConsole:
    def test_initial_connect_failure_raises(self, config, refused):
        with pytest.raises(ConnectError):
            run_console(config, scripted(["list"]), dial=FakeDial([refused]))

    def test_runs_until_exit(self, config):
        transport = FakeTransport()
        out = io.StringIO()
        run_console(config, scripted(["list", "exit"]), dial=FakeDial([transport]), out=out)
        assert transport.sent == ["list"]
        assert out.getvalue() == "ok: list\n"
        assert transport.closed
