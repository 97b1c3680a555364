# tinyrcon/config.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import ConfigError

log = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 25575
DEFAULT_TIMEOUT = 5.0


@dataclass(frozen=True)
class ConnectionConfig:
    host: str
    port: int
    password: str

    def __post_init__(self) -> None:
        if not self.host:
            raise ConfigError("host must not be empty")
        if not 1 <= self.port <= 65535:
            raise ConfigError(f"port out of range (1..65535): {self.port}")

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


def read_properties(path: Path) -> dict:
    """Parse a Java-style ``key=value`` file such as server.properties."""
    props = {}
    if path.exists():
        for line in path.read_text(encoding="utf-8", errors="ignore").splitlines():
            line = line.strip()
            if not line or line.startswith("#") or line.startswith("!"):
                continue
            if "=" in line:
                k, v = line.split("=", 1)
                props[k.strip()] = v.strip()
    return props


def _as_port(value: str, source: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise ConfigError(f"invalid port {value!r} in {source}") from None


def load_config(
    host: Optional[str] = None,
    port: Optional[int] = None,
    password: Optional[str] = None,
    properties: Optional[Path] = None,
) -> ConnectionConfig:
    """
    Resolve connection parameters.

    Precedence per field: explicit argument, then the server.properties file
    (rcon.port / rcon.password / server-ip), then RCON_HOST / RCON_PORT /
    RCON_PASSWORD from the environment, then built-in defaults.
    """
    props: dict = {}
    if properties is not None:
        if not properties.exists():
            raise ConfigError(f"properties file not found: {properties}")
        props = read_properties(properties)
        if props.get("enable-rcon", "true").strip().lower() != "true":
            log.warning(
                "RCON appears disabled (enable-rcon=false) in %s; "
                "set enable-rcon=true and restart the server",
                properties,
            )

    if host is None:
        host = props.get("server-ip") or os.environ.get("RCON_HOST") or DEFAULT_HOST

    if port is None:
        if props.get("rcon.port"):
            port = _as_port(props["rcon.port"], str(properties))
        elif os.environ.get("RCON_PORT"):
            port = _as_port(os.environ["RCON_PORT"], "RCON_PORT")
        else:
            port = DEFAULT_PORT

    if password is None:
        password = props.get("rcon.password") or os.environ.get("RCON_PASSWORD")
    if not password:
        raise ConfigError(
            "RCON password is required (pass --password, set rcon.password "
            "in server.properties or RCON_PASSWORD in the environment)"
        )

    return ConnectionConfig(host=host, port=port, password=password)


def timeout_from_env(default: float = DEFAULT_TIMEOUT) -> float:
    raw = os.environ.get("RCON_TIMEOUT")
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigError(f"invalid RCON_TIMEOUT {raw!r}") from None
