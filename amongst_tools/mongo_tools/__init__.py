"""
================================================================================
MongoDB Tools Module
================================================================================

This module provides a disposable mongod instance for test automation and
wrappers around the native mongoimport / mongoexport tools.

Exports:
    - MongoDBInstance: Starts and stops a local mongod
    - MongoTools: Runs mongoimport / mongoexport against an instance
    - InstanceOptions, ConnectionInfo, LogVerbosity: Configuration models
    - ExitCodeError, MongoToolTimeoutError: Tool failures

================================================================================
"""

from .inout import ExitCodeError, MongoToolTimeoutError, MongoTools
from .models import (
    ConnectionInfo,
    InstanceOptions,
    ListOutputHelper,
    LogVerbosity,
    LoguruOutputHelper,
)
from .mongo_instance import MongoDBInstance, resolve_binary_path

__all__ = [
    "ConnectionInfo",
    "ExitCodeError",
    "InstanceOptions",
    "ListOutputHelper",
    "LogVerbosity",
    "LoguruOutputHelper",
    "MongoDBInstance",
    "MongoToolTimeoutError",
    "MongoTools",
    "resolve_binary_path",
]
