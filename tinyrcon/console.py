# tinyrcon/console.py
from __future__ import annotations

import contextlib
import logging
import signal
import sys
import threading
from typing import Callable, Iterator, Optional, TextIO

from prompt_toolkit import PromptSession
from prompt_toolkit.history import InMemoryHistory

from .config import ConnectionConfig
from .errors import InputTooLongError, RconError
from .session import Session
from .transport import Dial

log = logging.getLogger(__name__)

MAX_LINE = 64 * 1024  # longest accepted command line, in characters
EXIT_TOKENS = ("exit", "stop")

# Reads one line (without its newline). Raises EOFError at end of input,
# KeyboardInterrupt on ^C and InputTooLongError for oversized lines.
LineReader = Callable[[str], str]


def _check_length(line: str, limit: int) -> str:
    if len(line) > limit:
        raise InputTooLongError(len(line), limit)
    return line


def stream_reader(stream: TextIO, limit: int = MAX_LINE) -> LineReader:
    """Line reader over a text stream; the prompt is ignored."""

    def read(_prompt: str) -> str:
        line = stream.readline(limit + 1)
        if line == "":
            raise EOFError
        if len(line) > limit and not line.endswith("\n"):
            # discard the rest of the oversized line so the next read starts clean
            rest = line
            while rest and not rest.endswith("\n"):
                rest = stream.readline(limit)
            raise InputTooLongError(len(line), limit)
        return _check_length(line.rstrip("\r\n"), limit)

    return read


def prompt_reader(limit: int = MAX_LINE) -> LineReader:
    """Line reader backed by a prompt_toolkit session with in-memory history."""
    session: PromptSession = PromptSession(history=InMemoryHistory())

    def read(prompt: str) -> str:
        return _check_length(session.prompt(prompt), limit)

    return read


@contextlib.contextmanager
def cancel_on_sigterm(cancel: threading.Event) -> Iterator[None]:
    """Set ``cancel`` on SIGTERM for the duration of the block (main thread only)."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = signal.signal(signal.SIGTERM, lambda signum, frame: cancel.set())
    try:
        yield
    finally:
        signal.signal(signal.SIGTERM, previous)


class Console:
    """Line-oriented REPL over one Session."""

    def __init__(
        self,
        session: Session,
        read_line: LineReader,
        out: Optional[TextIO] = None,
        cancel: Optional[threading.Event] = None,
    ) -> None:
        self.session = session
        self.read_line = read_line
        self.out = out or sys.stdout
        self.cancel = cancel or threading.Event()
        self.prompt = f"{session.config.address}> "

    def _print(self, text: str = "") -> None:
        print(text, file=self.out, flush=True)

    def run(self) -> None:
        try:
            self._loop()
        finally:
            self.session.close()

    def _loop(self) -> None:
        while True:
            if self.cancel.is_set():
                self._print("\nCaught ^C, exiting...")
                return

            try:
                line = self.read_line(self.prompt)
            except EOFError:
                log.info("EOF detected, exiting...")
                return
            except KeyboardInterrupt:
                self.cancel.set()
                continue
            except InputTooLongError as e:
                log.error("input too long: %s", e)
                continue
            except (OSError, UnicodeDecodeError) as e:
                log.error("can't read input: %s", e)
                continue

            if line == "":
                self._print()
                continue
            if line in EXIT_TOKENS:
                return

            try:
                result = self.session.send_command(line)
            except KeyboardInterrupt:
                # ^C mid-command (or mid-reconnect) ends the console at the next turn
                self.cancel.set()
                continue
            except RconError as e:
                log.error("can't execute command: %s", e)
                if self.session.terminated:
                    log.error("session with %s terminated, exiting", self.session.config.address)
                    return
                continue

            if result.is_empty:
                log.info("no response.")
                continue
            self._print(result.text)


def run_console(
    config: ConnectionConfig,
    read_line: Optional[LineReader] = None,
    *,
    dial: Optional[Dial] = None,
    out: Optional[TextIO] = None,
) -> None:
    """
    Connect and run the REPL until exit/stop, EOF or an interrupt.

    Only the initial connection failure is raised (ConnectError); everything
    after that is logged and the console keeps prompting.
    """
    session = Session.start(config, dial=dial)
    if read_line is None:
        read_line = prompt_reader() if sys.stdin.isatty() else stream_reader(sys.stdin)
    console = Console(session, read_line, out=out)
    with cancel_on_sigterm(console.cancel):
        console.run()
