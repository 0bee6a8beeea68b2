"""
================================================================================
Amongst Tools
================================================================================

Test fixture helpers for running a local MongoDB during test sessions.

Modules:
    - common: Shared configuration and logging utilities
    - helper: Bounded folder search used to locate MongoDB binaries
    - mongo_tools: mongod lifecycle and mongoimport / mongoexport wrappers
    - report_tools: Allure attachments for tool runs
    - pytest_plugin: Session fixtures registered with pytest

Example:
    from amongst_tools.mongo_tools import MongoDBInstance

    with MongoDBInstance() as instance:
        instance.import_data("shop", "orders", "fixtures/orders.json")
        instance.export_data("shop", "orders", "out/orders.json")

================================================================================
"""

__version__ = "1.0.0"

__all__ = [
    "common",
    "helper",
    "mongo_tools",
    "report_tools",
]
