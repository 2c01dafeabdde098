"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the server, loadable from three places.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line flags                                             │
    │      └── python -m webbasics --port 8000                            │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── WEBBASICS_PORT=8000 python -m webbasics                    │
    │                                                                      │
    │   3. JSON configuration file                                        │
    │      └── python -m webbasics --config config.json                   │
    │          {"port": 8000, "log_level": "DEBUG"}                       │
    │                                                                      │
    │   4. Default values (in this dataclass)                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Each layer only overrides what it actually sets. ServerConfig.load()
stacks layers 4 → 3 → 2; the CLI applies layer 1 with replace().

=============================================================================
FAILURE MODES
=============================================================================

    Config file missing / unreadable     ConfigError (fail fast)
    Config file not a JSON object        ConfigError
    Config file value of wrong type      ConfigError
    Unknown key in config file           warning, key ignored
    Env var that doesn't parse           warning, previous value kept
    Value out of range                   ConfigError from validate()

A typo in a file you wrote on purpose should stop the server. A stray
environment variable in someone's shell should not.

=============================================================================
"""

import json
import logging
import os
from dataclasses import dataclass, fields, replace as dataclass_replace
from pathlib import Path
from typing import Any, Mapping, Optional, Union


logger = logging.getLogger(__name__)


ENV_PREFIX = "WEBBASICS_"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


class ConfigError(ValueError):
    """Configuration could not be loaded or is invalid."""


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK     host, port, backlog, buffer_size
    TIMEOUTS    read_timeout, write_timeout, keep_alive_timeout
    HTTP        keep_alive, max_request_size
    THREADING   min_workers, max_workers, queue_size
    LOGGING     log_level, log_format
    IDENTITY    server_name

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """Address to bind. "0.0.0.0" listens on every interface."""

    port: int = 3000
    """Port to listen on. 0 asks the OS for any free port."""

    backlog: int = 128
    """Connections the kernel queues before refusing new ones."""

    buffer_size: int = 8192
    """Bytes per recv() call."""

    # ─────────────────────────────────────────────────────────────────────
    # TIMEOUTS
    # ─────────────────────────────────────────────────────────────────────
    # A server without timeouts can have every worker tied up by clients
    # that connect and then never send (or never read) anything.

    read_timeout: float = 30.0
    """Seconds allowed for reading a request."""

    write_timeout: float = 60.0
    """Seconds allowed for sending a response."""

    keep_alive_timeout: float = 5.0
    """Seconds an idle keep-alive connection waits for its next request."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    """Serve several requests per TCP connection."""

    max_request_size: int = 10 * 1024 * 1024  # 10 MB
    """Largest request (headers + body) accepted."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    """Worker threads started with the server."""

    max_workers: int = 16
    """Upper bound the pool may grow to under load."""

    queue_size: int = 100
    """Accepted connections waiting for a worker; beyond this → 503."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING, ERROR or CRITICAL."""

    log_format: str = "text"
    """Access log format: "text" (human) or "json" (log aggregators)."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "webbasics/1.0"
    """Value of the Server response header."""

    # =========================================================================
    # LOADING
    # =========================================================================

    @classmethod
    def from_file(cls, path: Union[str, Path], base: Optional["ServerConfig"] = None) -> "ServerConfig":
        """
        Load settings from a JSON file on top of base (defaults if None).

        Keys are field names, matched case-insensitively, so both of these
        work:

            {"port": 8000}
            {"Port": 8000}

        Raises:
            ConfigError: unreadable file, invalid JSON, non-object document,
                         or a value of the wrong type.
        """
        path = Path(path)
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"error loading config file {path}: {e}") from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigError(f"error reading config file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"config file {path} must contain a JSON object")

        known = {f.name: f for f in fields(cls)}
        values = {}
        for key, value in data.items():
            name = key.lower()
            if name not in known:
                logger.warning(f"Ignoring unknown config key {key!r} in {path}")
                continue
            values[name] = _check_type(name, known[name].type, value, source=str(path))

        config = dataclass_replace(base or cls(), **values)
        logger.debug(f"Config read from {path}: {values}")
        return config

    @classmethod
    def from_env(
        cls,
        base: Optional["ServerConfig"] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ServerConfig":
        """
        Overlay environment variables on base (defaults if None).

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        WEBBASICS_HOST           host
        WEBBASICS_PORT           port
        WEBBASICS_WORKERS        max_workers
        WEBBASICS_READ_TIMEOUT   read_timeout (seconds)
        WEBBASICS_WRITE_TIMEOUT  write_timeout (seconds)
        WEBBASICS_LOG_LEVEL      log_level
        WEBBASICS_LOG_FORMAT     log_format

        =====================================================================

        A variable that doesn't parse is logged and skipped; the value from
        base is kept.
        """
        environ = os.environ if environ is None else environ
        config = base or cls()

        mapping = {
            "HOST": ("host", str),
            "PORT": ("port", int),
            "WORKERS": ("max_workers", int),
            "READ_TIMEOUT": ("read_timeout", float),
            "WRITE_TIMEOUT": ("write_timeout", float),
            "LOG_LEVEL": ("log_level", str),
            "LOG_FORMAT": ("log_format", str),
        }

        values = {}
        for suffix, (name, convert) in mapping.items():
            var = ENV_PREFIX + suffix
            raw = environ.get(var)
            if not raw:
                continue
            try:
                values[name] = convert(raw)
            except ValueError as e:
                logger.warning(f"Ignoring {var}={raw!r}: {e}")

        # More workers than the minimum only makes sense if the minimum follows
        if "max_workers" in values and values["max_workers"] < config.min_workers:
            values["min_workers"] = values["max_workers"]

        return dataclass_replace(config, **values)

    @classmethod
    def load(
        cls,
        path: Optional[Union[str, Path]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ServerConfig":
        """
        Defaults → JSON file (if path given) → environment.

        Command-line flags go on top with replace().
        """
        config = cls()
        if path is not None:
            config = cls.from_file(path, base=config)
        return cls.from_env(base=config, environ=environ)

    def replace(self, **overrides: Any) -> "ServerConfig":
        """
        Copy with overrides applied. None means "not set" and is skipped,
        which lets argparse defaults of None fall through.
        """
        return dataclass_replace(self, **{k: v for k, v in overrides.items() if v is not None})

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def validate(self) -> None:
        """
        Fail fast on impossible settings.

        Called by HTTPServer at construction, so a bad config never gets
        as far as binding a socket.
        """
        if not 0 <= self.port < 65536:
            raise ConfigError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ConfigError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ConfigError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ConfigError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ConfigError("buffer_size must be >= 1024")

        for name in ("read_timeout", "write_timeout", "keep_alive_timeout"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be > 0")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"Unknown log_level {self.log_level!r}, expected one of {LOG_LEVELS}")

        if self.log_format not in LOG_FORMATS:
            raise ConfigError(f"Unknown log_format {self.log_format!r}, expected one of {LOG_FORMATS}")


def _check_type(name: str, annotation: Any, value: Any, source: str) -> Any:
    """
    Check a value from a config file against its field's annotation.

    JSON has no int/float distinction, so an int is accepted for a float
    field. bool is rejected for numeric fields even though it's an int
    subclass: {"port": true} is a mistake, not port 1.
    """
    expected = {"str": str, "int": int, "float": float, "bool": bool}.get(
        annotation if isinstance(annotation, str) else getattr(annotation, "__name__", "")
    )
    if expected is None:
        return value

    if expected is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if expected is not bool and isinstance(value, bool):
        raise ConfigError(f"{source}: {name} must be {expected.__name__}, got bool")
    if not isinstance(value, expected):
        raise ConfigError(
            f"{source}: {name} must be {expected.__name__}, got {type(value).__name__}"
        )
    return value


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# ServerConfig.load(path)          defaults → file → env
# config.replace(port=args.port)   CLI flags on top (None = unset)
# config.validate()                fail fast, ConfigError
#
# PRODUCTION CHECKLIST:
# □ Bind to 0.0.0.0 inside containers
# □ Keep timeouts set; never run with unbounded reads
# □ Size workers for the machine (I/O bound → ~2x cores)
# □ INFO or WARNING log level
# =============================================================================
