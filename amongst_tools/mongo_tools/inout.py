"""
================================================================================
MongoDB Import / Export
================================================================================

Thin wrappers around the native mongoimport and mongoexport tools, bound
to one running mongod instance.

The tools own data transfer correctness. This module only builds their
command line, bounds the wait and turns the outcome into exceptions:

    - FileNotFoundError: import source missing, nothing is spawned
    - MongoToolTimeoutError: the tool did not exit within the timeout
    - ExitCodeError: the tool exited with a non-zero status

Usage:
    tools = MongoTools(ConnectionInfo("127.0.0.1", 27017), options, "/opt/mongodb/bin")
    tools.import_data("shop", "orders", "fixtures/orders.json")
    tools.export_data("shop", "orders", "out/orders.json")

================================================================================
"""

import os
from typing import List, Optional

import allure
from loguru import logger

from amongst_tools.common import AmongstError
from amongst_tools.report_tools.allure_utils import attach_invocation

from .models import ConnectionInfo, InstanceOptions, LogVerbosity
from .process_runner import InvocationResult, ToolInvocation, run_tool


DEFAULT_TOOL_TIMEOUT = 5000

MONGOIMPORT = "mongoimport"
MONGOEXPORT = "mongoexport"


class ExitCodeError(AmongstError):
    """Raised when a MongoDB tool exits with a non-zero status."""

    def __init__(self, message: str, exit_code: int):
        super().__init__(message)
        self.exit_code = exit_code


class MongoToolTimeoutError(AmongstError, TimeoutError):
    """Raised when a MongoDB tool does not finish in time."""

    def __init__(self, message: str, timeout: int):
        super().__init__(message)
        self.timeout = timeout


def to_tool_path(file_path) -> str:
    """mongoimport / mongoexport want forward slashes on every platform."""
    return os.fspath(file_path).replace("\\", "/")


class MongoTools:
    """
    Runs mongoimport / mongoexport against one instance.

    Args:
        connection: Address of the running mongod.
        options: Verbosity and log sink.
        binary_path: Folder holding the tool executables.
    """

    def __init__(
        self,
        connection: ConnectionInfo,
        options: Optional[InstanceOptions] = None,
        binary_path: Optional[str] = None
    ):
        self.connection = connection
        self.options = options or InstanceOptions()
        self.binary_path = binary_path or self.options.binary_path or ""

    def _common_args(self, database: str, collection: str) -> List[str]:
        return [
            "--host", self.connection.host,
            "--db", database,
            "--collection", collection,
        ]

    def _verbosity_args(self) -> List[str]:
        flag = self.options.log_verbosity.tool_flag
        return [flag] if flag else []

    def _on_output(self, line: str) -> None:
        logger.debug(line)
        if self.options.log_verbosity >= LogVerbosity.VERBOSE:
            self.options.output_helper.write_line(line)

    def _run(self, tool: str, args: List[str], timeout: int) -> InvocationResult:
        invocation = ToolInvocation(
            tool=tool,
            args=args,
            binary_path=self.binary_path,
            timeout=timeout,
        )
        result = run_tool(invocation, on_stdout=self._on_output, on_stderr=self._on_output)
        attach_invocation(invocation, result)
        return result

    def _notify_success(self, message: str) -> None:
        if self.options.log_verbosity > LogVerbosity.NORMAL:
            self.options.output_helper.write_line(message)

    def import_data(
        self,
        database: str,
        collection: str,
        file_path,
        drop_collection: bool = True,
        timeout: int = DEFAULT_TOOL_TIMEOUT
    ) -> None:
        """
        Import data using native mongoimport functionality.

        Args:
            database: Database name.
            collection: Collection name.
            file_path: File to import.
            drop_collection: Drop the existing collection first.
            timeout: Failure timeout in milliseconds. 5000 by default.

        Raises:
            FileNotFoundError: file_path does not exist.
            MongoToolTimeoutError: mongoimport did not finish in time.
            ExitCodeError: mongoimport exited with a non-zero status.
        """
        if not os.path.isfile(file_path):
            raise FileNotFoundError(f"Could not import file {file_path}.")

        file_path = to_tool_path(file_path)

        args = self._common_args(database, collection) + ["--file", file_path]
        if drop_collection:
            args.append("--drop")
        args += self._verbosity_args()

        with allure.step(f"mongoimport {file_path} -> {database}/{collection}"):
            result = self._run(MONGOIMPORT, args, timeout)

        if result.timed_out:
            message = (
                f"Mongoimport failed to import {file_path} to {database}/{collection} "
                f"after {timeout} milliseconds."
            )
            logger.error(message)
            raise MongoToolTimeoutError(message, timeout)

        if result.exit_code != 0:
            message = (
                f"Mongoimport failed to import {file_path} to {database}/{collection}. "
                f"Exit code {result.exit_code}."
            )
            logger.error(message)
            raise ExitCodeError(message, result.exit_code)

        self._notify_success(f"Successfully imported {file_path} to {database}/{collection}")

    def export_data(
        self,
        database: str,
        collection: str,
        file_path,
        timeout: int = DEFAULT_TOOL_TIMEOUT
    ) -> None:
        """
        Export data using native mongoexport functionality.

        Args:
            database: Database name.
            collection: Collection name.
            file_path: Export destination.
            timeout: Failure timeout in milliseconds. 5000 by default.

        Raises:
            MongoToolTimeoutError: mongoexport did not finish in time.
            ExitCodeError: mongoexport exited with a non-zero status.
        """
        file_path = to_tool_path(file_path)

        args = self._common_args(database, collection) + ["--out", file_path]
        args += self._verbosity_args()

        with allure.step(f"mongoexport {database}/{collection} -> {file_path}"):
            result = self._run(MONGOEXPORT, args, timeout)

        if result.timed_out:
            message = (
                f"Mongoexport failed to export {database}/{collection} to {file_path} "
                f"after {timeout} milliseconds."
            )
            logger.error(message)
            raise MongoToolTimeoutError(message, timeout)

        if result.exit_code != 0:
            message = (
                f"Mongoexport failed to export {database}/{collection} to {file_path}. "
                f"Exit code {result.exit_code}."
            )
            logger.error(message)
            raise ExitCodeError(message, result.exit_code)

        self._notify_success(f"Successfully exported {database}/{collection} to {file_path}")


__all__ = [
    "DEFAULT_TOOL_TIMEOUT",
    "ExitCodeError",
    "MongoToolTimeoutError",
    "MongoTools",
    "to_tool_path",
]
