"""
=============================================================================
COMMAND-LINE ENTRY POINT
=============================================================================

    # hello handler on every path, localhost:3000
    python -m webbasics

    # hello only under /foo and /bar; everything else is a 404
    python -m webbasics --route /foo --route /bar

    # settings from a file, port from the flag
    python -m webbasics --config config.json --port 8000

    # same thing via the environment
    WEBBASICS_PORT=8000 python -m webbasics

Installed with pip, the same interface is the `webbasics` command.

Flags beat environment variables, which beat the config file, which
beats the defaults in ServerConfig.

=============================================================================
"""

import argparse
import sys
from typing import List, Mapping, Optional, Sequence

from . import __version__
from .config import LOG_FORMATS, LOG_LEVELS, ConfigError, ServerConfig
from .handlers import hello
from .http import Router
from .middleware import LoggingMiddleware
from .server import HTTPServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="webbasics",
        description="Prefix-routed hello-world HTTP server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m webbasics                           # hello on every path
  python -m webbasics --route /foo              # hello under /foo only
  python -m webbasics --config config.json      # settings from a file
  python -m webbasics --host 0.0.0.0 -p 8000    # listen on all interfaces
        """,
    )

    # Flags default to None so unset ones don't override file/env values
    parser.add_argument(
        "--config", "-c",
        metavar="PATH",
        help="JSON configuration file",
    )
    parser.add_argument(
        "--host", "-H",
        help="Host to bind to (default: 127.0.0.1, use 0.0.0.0 for containers)",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        help="Port to listen on (default: 3000)",
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Worker threads to start with (default: 4, max will be 2x this)",
    )
    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        help="Access log format (default: text)",
    )
    parser.add_argument(
        "--route", "-r",
        action="append",
        metavar="PREFIX",
        dest="routes",
        help="Mount the hello handler at PREFIX; repeatable, first match wins (default: /)",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"webbasics {__version__}",
    )
    return parser


def build_config(args: argparse.Namespace, environ: Optional[Mapping[str, str]] = None) -> ServerConfig:
    """
    Defaults → --config file → environment → flags, then validate.

    Raises:
        ConfigError: unreadable config file or invalid resulting settings.
    """
    config = ServerConfig.load(args.config, environ=environ)

    workers = {}
    if args.workers is not None:
        workers = {"min_workers": args.workers, "max_workers": args.workers * 2}

    config = config.replace(
        host=args.host,
        port=args.port,
        log_level=args.log_level,
        log_format=args.log_format,
        **workers,
    )
    config.validate()
    return config


def build_router(prefixes: Optional[Sequence[str]]) -> Router:
    """A Router with hello mounted at each prefix, in the order given."""
    router = Router()
    for prefix in prefixes or ["/"]:
        router.add(prefix, hello)
    return router


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = build_config(args)
        server = HTTPServer(build_router(args.routes), config)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    server.use(LoggingMiddleware(log_format=config.log_format))

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
