#!/usr/bin/env python3
from __future__ import annotations
import argparse, logging, sys
from pathlib import Path

from tinyrcon.config import DEFAULT_TIMEOUT, load_config, timeout_from_env
from tinyrcon.console import run_console
from tinyrcon.errors import ConfigError, RconError
from tinyrcon.execute import exec_command
from tinyrcon.log import configure_logging
from tinyrcon.transport import dialer

# --- helpers -----------------------------------------------------------------

def _connection(args, parser):
    try:
        config = load_config(
            host=args.host,
            port=args.port,
            password=args.password,
            properties=Path(args.properties) if args.properties else None,
        )
        timeout = args.timeout if args.timeout is not None else timeout_from_env(DEFAULT_TIMEOUT)
    except ConfigError as e:
        parser.error(str(e))
    return config, dialer(timeout)

# --- console / exec ----------------------------------------------------------

def do_console(args, parser) -> int:
    """Interactive console; type exit or stop (or ^D) to leave."""
    config, dial = _connection(args, parser)
    try:
        run_console(config, dial=dial)
    except RconError as e:
        print(f"[rcon error] {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        pass
    return 0

def do_exec(args, parser) -> int:
    config, dial = _connection(args, parser)
    cmd = " ".join(args.command)
    try:
        out = exec_command(config, cmd, dial=dial)
    except RconError as e:
        print(f"[rcon error] {e}", file=sys.stderr)
        return 1
    if out:
        print(out)
    return 0

# --- argparse ----------------------------------------------------------------

def build_parser():
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--host", help="Server address (default: RCON_HOST or 127.0.0.1)")
    common.add_argument("--port", type=int, help="RCON port (default: RCON_PORT or 25575)")
    common.add_argument("--password", help="RCON password (default: RCON_PASSWORD)")
    common.add_argument("--properties", help="Read rcon.port / rcon.password from a server.properties file")
    common.add_argument("--timeout", type=float, help=f"Socket timeout in seconds (default: RCON_TIMEOUT or {DEFAULT_TIMEOUT})")
    common.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    common.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines")

    p = argparse.ArgumentParser(prog="rconcli.py", description="Source RCON client.")
    sub = p.add_subparsers(dest="cmd", required=True)

    pc = sub.add_parser("console", parents=[common], help="Interactive RCON console")
    pc.set_defaults(func=do_console)

    pe = sub.add_parser("exec", parents=[common], help="Send one command and print the response")
    pe.add_argument("command", nargs="+", help='Command to send, e.g. say "hello"')
    pe.set_defaults(func=do_exec)

    return p

def main(argv=None):
    argv = argv if argv is not None else sys.argv[1:]
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(level=logging.DEBUG if args.verbose else logging.INFO, json_format=args.json_logs)
    return args.func(args, parser)

if __name__ == "__main__":
    raise SystemExit(main())
