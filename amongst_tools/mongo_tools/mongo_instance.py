"""
================================================================================
MongoDB Instance for Tests
================================================================================

Launches a throwaway mongod for a test run and tears it down afterwards.

Key Features:
    - Binary folder resolved from options, config, disk search or PATH
    - Free port and temporary data directory picked automatically
    - Startup bounded by a timeout, readiness read from the mongod log
    - mongoimport / mongoexport bound to the running instance
    - Context manager for safe start/stop

Usage:
    from amongst_tools.mongo_tools import MongoDBInstance

    with MongoDBInstance() as instance:
        instance.import_data("shop", "orders", "fixtures/orders.json")
        client = instance.client()

Author: Automation Team
License: MIT
================================================================================
"""

import os
import shutil
import socket
import subprocess
import tempfile
import threading
import time
from typing import List, Optional

from loguru import logger

from amongst_tools.common import get_config, init_logger
from amongst_tools.helper import find_downwards, find_upwards

from .inout import ExitCodeError, MongoTools, MongoToolTimeoutError
from .models import ConnectionInfo, InstanceOptions, LogVerbosity
from .process_runner import IS_UNIX, make_executable, start_pumps


# Initialize logger
init_logger()

MONGOD = "mongod"
DEFAULT_SEARCH_PATTERN = "mongodb*"

# mongod < 4.4 logs plain text, newer versions log JSON with a capital W
READY_MARKER = "waiting for connections"

# Seconds between SIGTERM and SIGKILL on stop
STOP_GRACE_PERIOD = 5.0


def _executable_name(tool: str) -> str:
    return tool if IS_UNIX else f"{tool}.exe"


def find_free_port(ip: str = "127.0.0.1") -> int:
    """
    Asks the OS for a currently unused TCP port.
    """
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((ip, 0))
        return sock.getsockname()[1]


def resolve_binary_path(binary_path: Optional[str] = None, start_path: Optional[str] = None) -> str:
    """
    Locates the folder holding the mongod executable.

    Resolution order:
        1. binary_path argument
        2. "mongodb.binary_path" config value
        3. folder matching "mongodb.search_pattern" found downwards from
           start_path (its "bin" child when present)
        4. folder of mongod on PATH

    Raises:
        FileNotFoundError: none of the above yields a folder.
    """
    configured = binary_path or get_config("mongodb.binary_path")
    if configured:
        return str(configured)

    start_path = start_path or os.getcwd()
    pattern = get_config("mongodb.search_pattern", DEFAULT_SEARCH_PATTERN)
    found = find_downwards(start_path, pattern)
    if found is not None:
        bin_dir = os.path.join(found, "bin")
        return bin_dir if os.path.isdir(bin_dir) else found

    on_path = shutil.which(MONGOD)
    if on_path:
        return os.path.dirname(on_path)

    raise FileNotFoundError(
        f"Could not locate a MongoDB installation from {start_path} "
        f"(pattern '{pattern}') or on PATH."
    )


class MongoDBInstance(MongoTools):
    """
    A mongod child process dedicated to one test session.

    Inherits import_data / export_data, which run against this
    instance's connection.
    """

    def __init__(self, options: Optional[InstanceOptions] = None):
        """
        Prepares an instance without starting it.

        Args:
            options: Instance settings. Defaults to InstanceOptions().
        """
        options = options or InstanceOptions()
        port = options.port or find_free_port(options.bind_ip)
        super().__init__(ConnectionInfo(options.bind_ip, port), options)

        self._process: Optional[subprocess.Popen] = None
        self._owns_db_path = False
        self.db_path = options.db_path
        self.log_lines: List[str] = []
        self._ready = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def _on_mongod_output(self, line: str) -> None:
        if READY_MARKER in line.lower():
            self._ready.set()
        self._on_output(line)

    def _build_command(self) -> List[str]:
        cmd = [
            os.path.join(self.binary_path, _executable_name(MONGOD)),
            "--dbpath", self.db_path,
            "--port", str(self.connection.port),
            "--bind_ip", self.connection.ip,
        ]
        if self.options.log_verbosity == LogVerbosity.QUIET:
            cmd.append("--quiet")
        return cmd

    def start(self) -> "MongoDBInstance":
        """
        Starts mongod and waits until it accepts connections.

        Returns:
            Self for method chaining.

        Raises:
            FileNotFoundError: no MongoDB installation could be located.
            MongoToolTimeoutError: mongod was not ready within startup_timeout.
            ExitCodeError: mongod exited during startup.
        """
        if self.is_running:
            return self

        self.binary_path = resolve_binary_path(self.binary_path)
        make_executable(os.path.join(self.binary_path, _executable_name(MONGOD)))

        if self.db_path is None:
            self.db_path = tempfile.mkdtemp(prefix="amongst-")
            self._owns_db_path = True
        else:
            os.makedirs(self.db_path, exist_ok=True)

        cmd = self._build_command()
        logger.info(f"Starting mongod on {self.connection.host} (dbpath={self.db_path})")
        logger.debug(f"Executing: {' '.join(cmd)}")

        self._ready.clear()
        self.log_lines = []
        try:
            self._process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
            start_pumps(self._process, self.log_lines, [], on_stdout=self._on_mongod_output)

            self._wait_until_ready()
        except BaseException:
            self.stop()
            raise

        if self.options.log_verbosity > LogVerbosity.NORMAL:
            self.options.output_helper.write_line(f"mongod listening on {self.connection.host}")
        logger.info(f"mongod ready on {self.connection.host}")
        return self

    def _wait_until_ready(self) -> None:
        timeout = self.options.startup_timeout
        deadline = time.monotonic() + timeout / 1000.0

        while not self._ready.wait(0.1):
            exit_code = self._process.poll()
            if exit_code is not None:
                message = f"mongod exited during startup. Exit code {exit_code}."
                logger.error(message)
                raise ExitCodeError(message, exit_code)

            if time.monotonic() >= deadline:
                message = (
                    f"mongod did not accept connections on {self.connection.host} "
                    f"after {timeout} milliseconds."
                )
                logger.error(message)
                raise MongoToolTimeoutError(message, timeout)

    def stop(self) -> None:
        """
        Stops mongod and removes its temporary data directory.

        Safe to call more than once.
        """
        if self._process is not None:
            if self._process.poll() is None:
                self._process.terminate()
                try:
                    self._process.wait(timeout=STOP_GRACE_PERIOD)
                except subprocess.TimeoutExpired:
                    logger.warning("mongod ignored terminate, killing it")
                    self._process.kill()
                    self._process.wait()
            logger.info(f"Stopped mongod on {self.connection.host}")
            self._process = None

        self._cleanup_db_path()

    def _cleanup_db_path(self) -> None:
        if self._owns_db_path and self.db_path:
            shutil.rmtree(self.db_path, ignore_errors=True)
            self.db_path = None
            self._owns_db_path = False

    def client(self, **kwargs):
        """
        Returns a pymongo MongoClient connected to this instance.
        """
        # Import pymongo here to make it optional
        from pymongo import MongoClient

        return MongoClient(self.connection.uri, **kwargs)

    def __enter__(self) -> "MongoDBInstance":
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()


# ============================================================
# CLI Interface
# ============================================================

def main(argv=None):
    """
    CLI entry point for MongoDB tools.
    """
    import argparse

    parser = argparse.ArgumentParser(description="MongoDB Test Instance Tools")
    parser.add_argument("--host", default="127.0.0.1", help="mongod address")
    parser.add_argument("--port", type=int, default=27017, help="mongod port")
    parser.add_argument("--bin", dest="binary_path", help="Folder with the mongo tools")
    parser.add_argument(
        "--verbosity",
        choices=[v.name.lower() for v in LogVerbosity],
        default="normal",
        help="Tool verbosity"
    )
    parser.add_argument("--timeout", type=int, default=5000, help="Timeout in milliseconds")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")
    subparsers.required = True

    # Import command
    import_parser = subparsers.add_parser("import", help="Import a file with mongoimport")
    import_parser.add_argument("database", help="Target database")
    import_parser.add_argument("collection", help="Target collection")
    import_parser.add_argument("file", help="File to import")
    import_parser.add_argument("--keep", action="store_true", help="Do not drop the collection")

    # Export command
    export_parser = subparsers.add_parser("export", help="Export a collection with mongoexport")
    export_parser.add_argument("database", help="Source database")
    export_parser.add_argument("collection", help="Source collection")
    export_parser.add_argument("file", help="Destination file")

    # Find command
    find_parser = subparsers.add_parser("find", help="Search for a folder")
    find_parser.add_argument("pattern", help="Folder name pattern")
    find_parser.add_argument("--start", default=os.getcwd(), help="Start path")
    find_parser.add_argument("--upwards", action="store_true", help="Search into subfolders")
    find_parser.add_argument("--depth", type=int, default=6, help="Max recursion depth")

    args = parser.parse_args(argv)

    if args.command == "find":
        search = find_upwards if args.upwards else find_downwards
        result = search(args.start, args.pattern, args.depth)
        if result is None:
            logger.warning(f"No folder matching '{args.pattern}' found")
            return 1
        print(result)
        return 0

    options = InstanceOptions(
        log_verbosity=LogVerbosity.parse(args.verbosity),
        binary_path=resolve_binary_path(args.binary_path),
    )
    tools = MongoTools(ConnectionInfo(args.host, args.port), options)

    if args.command == "import":
        tools.import_data(
            args.database,
            args.collection,
            args.file,
            drop_collection=not args.keep,
            timeout=args.timeout
        )
        logger.info(f"Imported {args.file} into {args.database}/{args.collection}")

    elif args.command == "export":
        tools.export_data(args.database, args.collection, args.file, timeout=args.timeout)
        logger.info(f"Exported {args.database}/{args.collection} to {args.file}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
