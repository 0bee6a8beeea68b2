"""
================================================================================
Root Pytest Configuration
================================================================================

This module provides the pytest configuration for the test suite.
It registers common markers and provides shared fixtures.

================================================================================
"""

import sys

import pytest

from amongst_tools.mongo_tools import ListOutputHelper


def pytest_configure(config):
    """Configure pytest with project-wide custom markers."""

    # Priority markers
    config.addinivalue_line(
        "markers", "P0: Critical priority tests - must pass for release"
    )
    config.addinivalue_line(
        "markers", "P1: High priority tests - important functionality"
    )
    config.addinivalue_line(
        "markers", "P2: Medium priority tests - edge cases"
    )

    # Test type markers
    config.addinivalue_line(
        "markers", "unit: Tests without external binaries"
    )
    config.addinivalue_line(
        "markers", "integration: Tests against a real mongod"
    )
    config.addinivalue_line(
        "markers", "requires_mongod: Tests needing a real mongod binary"
    )


def pytest_collection_modifyitems(config, items):
    """
    Auto-add 'unit' / 'integration' markers from the test directory.
    """
    for item in items:
        if "unit" in item.path.parts:
            item.add_marker(pytest.mark.unit)

        if "integration" in item.path.parts:
            item.add_marker(pytest.mark.integration)


def pytest_report_header(config):
    """Add custom header to pytest output."""
    return [
        "",
        "=" * 60,
        "Amongst Tools Test Suite",
        "=" * 60,
        "",
    ]


@pytest.fixture
def output_helper() -> ListOutputHelper:
    """Log sink collecting lines for assertions."""
    return ListOutputHelper()


@pytest.fixture
def fake_tools(tmp_path):
    """
    Folder of stand-in mongoimport / mongoexport executables.

    Each fake is a Python script that records its argv to
    ``<name>.args`` next to itself, prints a line to stdout and stderr,
    then sleeps FAKE_SLEEP seconds and exits with FAKE_EXIT_CODE, both
    read from files in the folder.

    Returns:
        Helper with ``path`` plus ``set_exit_code`` / ``set_sleep`` /
        ``recorded_args``.
    """
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()

    script = (
        f"#!{sys.executable}\n"
        "import json, os, sys, time\n"
        "here = os.path.dirname(os.path.abspath(__file__))\n"
        "name = os.path.basename(__file__)\n"
        "with open(os.path.join(here, name + '.args'), 'w') as f:\n"
        "    json.dump(sys.argv[1:], f)\n"
        "def read(key, default):\n"
        "    path = os.path.join(here, key)\n"
        "    return open(path).read().strip() if os.path.exists(path) else default\n"
        "print(name + ' started', flush=True)\n"
        "print(name + ' warning', file=sys.stderr, flush=True)\n"
        "time.sleep(float(read('FAKE_SLEEP', '0')))\n"
        "sys.exit(int(read('FAKE_EXIT_CODE', '0')))\n"
    )

    for tool in ("mongoimport", "mongoexport"):
        # Written without the executable bit on purpose
        (bin_dir / tool).write_text(script, encoding="utf-8")

    class FakeTools:
        path = str(bin_dir)

        @staticmethod
        def set_exit_code(code: int) -> None:
            (bin_dir / "FAKE_EXIT_CODE").write_text(str(code))

        @staticmethod
        def set_sleep(seconds: float) -> None:
            (bin_dir / "FAKE_SLEEP").write_text(str(seconds))

        @staticmethod
        def recorded_args(tool: str):
            import json
            args_file = bin_dir / f"{tool}.args"
            if not args_file.exists():
                return None
            return json.loads(args_file.read_text())

    return FakeTools


FAKE_MONGOD = """\
import json, os, signal, sys, time
here = os.path.dirname(os.path.abspath(__file__))
with open(os.path.join(here, "mongod.args"), "w") as f:
    json.dump(sys.argv[1:], f)
mode = os.environ.get("FAKE_MONGOD_MODE", "ready")
if mode == "crash":
    print("exception in initAndListen, terminating", flush=True)
    sys.exit(48)
print('{"msg":"Build Info"}', flush=True)
if mode == "ready":
    print('{"msg":"Waiting for connections","attr":{"port":1}}', flush=True)
signal.signal(signal.SIGTERM, lambda *_: sys.exit(0))
while True:
    time.sleep(0.1)
"""


@pytest.fixture
def fake_mongod(tmp_path):
    """
    Folder with a stand-in mongod.

    The fake records its argv to ``mongod.args``, then behaves according
    to FAKE_MONGOD_MODE: "ready" logs the readiness line, "hang" never
    does, "crash" exits with status 48. It exits cleanly on SIGTERM.
    """
    bin_dir = tmp_path / "mongodb-fake" / "bin"
    bin_dir.mkdir(parents=True)
    (bin_dir / "mongod").write_text(f"#!{sys.executable}\n" + FAKE_MONGOD, encoding="utf-8")
    return bin_dir
