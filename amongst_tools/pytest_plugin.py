"""
================================================================================
Amongst Pytest Plugin
================================================================================

Fixtures exposing a disposable MongoDB instance to test suites. Registered
through the ``pytest11`` entry point, so installing the package is enough.

Fixtures:
    - mongodb_options: InstanceOptions built from configuration
    - mongodb_instance: Session-scoped running mongod
    - mongodb_client: pymongo client connected to mongodb_instance
    - unique_db_name: Database name unique to one test

Command line options:
    --mongodb-bin: Folder containing mongod / mongoimport / mongoexport
    --mongodb-verbosity: quiet, normal or verbose

================================================================================
"""

import uuid
from typing import Generator

import pytest
from loguru import logger

from amongst_tools.mongo_tools import InstanceOptions, LogVerbosity, MongoDBInstance


def pytest_addoption(parser):
    group = parser.getgroup("amongst", "Disposable MongoDB instance")
    group.addoption(
        "--mongodb-bin",
        action="store",
        default=None,
        help="Folder containing the MongoDB binaries",
    )
    group.addoption(
        "--mongodb-verbosity",
        action="store",
        default=None,
        choices=[v.name.lower() for v in LogVerbosity],
        help="Verbosity of mongod and the import/export tools",
    )


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "requires_mongod: Tests needing a real mongod binary"
    )


@pytest.fixture(scope="session")
def mongodb_options(pytestconfig) -> InstanceOptions:
    """
    Options for the session instance.

    Command line flags win over the "mongodb.*" configuration values.
    """
    options = InstanceOptions()

    verbosity = pytestconfig.getoption("--mongodb-verbosity")
    if verbosity:
        options.log_verbosity = LogVerbosity.parse(verbosity)

    binary_path = pytestconfig.getoption("--mongodb-bin")
    if binary_path:
        options.binary_path = binary_path

    return options


@pytest.fixture(scope="session")
def mongodb_instance(mongodb_options: InstanceOptions) -> Generator[MongoDBInstance, None, None]:
    """
    Provide a running mongod for the whole session.

    Usage:
        def test_orders(mongodb_instance, tmp_path):
            mongodb_instance.import_data("shop", "orders", "orders.json")
    """
    instance = MongoDBInstance(mongodb_options)
    with instance:
        logger.info(f"Session mongod available at {instance.connection.uri}")
        yield instance


@pytest.fixture
def mongodb_client(mongodb_instance: MongoDBInstance):
    """Provide a pymongo client bound to the session instance."""
    client = mongodb_instance.client(serverSelectionTimeoutMS=5000)
    try:
        yield client
    finally:
        client.close()


@pytest.fixture
def unique_db_name() -> str:
    """
    Generate a database name that won't conflict with other tests.
    """
    return f"autotest_{uuid.uuid4().hex[:8]}"
