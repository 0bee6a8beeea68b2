"""
Data models shared by the MongoDB instance and its import/export tools.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import List, Optional

from loguru import logger

from amongst_tools.common import get_config


class LogVerbosity(IntEnum):
    """Ordered verbosity levels: QUIET < NORMAL < VERBOSE."""
    QUIET = 0
    NORMAL = 1
    VERBOSE = 2

    @property
    def tool_flag(self) -> Optional[str]:
        """The mongo tools flag for this level, None at NORMAL."""
        if self is LogVerbosity.QUIET:
            return "--quiet"
        if self is LogVerbosity.VERBOSE:
            return "--verbose"
        return None

    @classmethod
    def parse(cls, value) -> "LogVerbosity":
        if isinstance(value, cls):
            return value
        return cls[str(value).strip().upper()]


class LoguruOutputHelper:
    """
    Default log sink. Lines go to loguru at INFO level.
    """

    def write_line(self, message: str) -> None:
        logger.info(message)


class ListOutputHelper:
    """
    Log sink that keeps every line in memory, handy for assertions.
    """

    def __init__(self):
        self.lines: List[str] = []

    def write_line(self, message: str) -> None:
        self.lines.append(message)


@dataclass
class ConnectionInfo:
    """
    Address of a running mongod instance.
    """
    ip: str
    port: int

    @property
    def host(self) -> str:
        return f"{self.ip}:{self.port}"

    @property
    def uri(self) -> str:
        return f"mongodb://{self.host}"


def _default_bind_ip() -> str:
    return get_config("mongodb.bind_ip", "127.0.0.1")


def _default_verbosity() -> LogVerbosity:
    return LogVerbosity.parse(get_config("mongodb.verbosity", "normal"))


def _default_startup_timeout() -> int:
    return int(get_config("mongodb.startup_timeout", 10000))


@dataclass
class InstanceOptions:
    """
    Settings for a MongoDBInstance and the tools it runs.

    Attributes:
        log_verbosity: Controls --quiet/--verbose and success notices
        output_helper: Sink with a write_line(str) method
        binary_path: Folder containing mongod/mongoimport/mongoexport.
                     Resolved from config or disk when None.
        bind_ip: Address mongod listens on
        port: Listening port. A free one is picked when None.
        db_path: Data directory. A temporary one is used when None.
        startup_timeout: Milliseconds to wait for mongod to accept connections
    """
    log_verbosity: LogVerbosity = field(default_factory=_default_verbosity)
    output_helper: object = field(default_factory=LoguruOutputHelper)
    binary_path: Optional[str] = None
    bind_ip: str = field(default_factory=_default_bind_ip)
    port: Optional[int] = None
    db_path: Optional[str] = None
    startup_timeout: int = field(default_factory=_default_startup_timeout)


__all__ = [
    "ConnectionInfo",
    "InstanceOptions",
    "ListOutputHelper",
    "LogVerbosity",
    "LoguruOutputHelper",
]
