# tinyrcon/execute.py
from __future__ import annotations

import logging
from typing import Optional

from .config import ConnectionConfig
from .errors import RconError
from .session import Session
from .transport import Dial

log = logging.getLogger(__name__)


def exec_command(config: ConnectionConfig, command: str, *, dial: Optional[Dial] = None) -> str:
    """Connect, run a single command, disconnect and return the response text."""
    with Session.start(config, dial=dial) as session:
        try:
            result = session.send_command(command)
        except RconError as e:
            log.error("can't send command %r: %s", command, e)
            raise
        log.info('command: "%s" sent!', command)
        if result.is_empty:
            log.warning("response is empty!")
        return result.text
