import sys

import pytest

from amongst_tools.mongo_tools import (
    ConnectionInfo,
    ExitCodeError,
    InstanceOptions,
    LogVerbosity,
    MongoTools,
    MongoToolTimeoutError,
)
from amongst_tools.mongo_tools import inout, process_runner


posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses shebang scripts")


@pytest.fixture
def source_file(tmp_path):
    path = tmp_path / "orders.json"
    path.write_text('{"_id": 1, "item": "abc"}\n', encoding="utf-8")
    return path


def make_tools(fake_tools, output_helper, verbosity=LogVerbosity.NORMAL):
    options = InstanceOptions(log_verbosity=verbosity, output_helper=output_helper)
    return MongoTools(ConnectionInfo("127.0.0.1", 27123), options, fake_tools.path)


def test_to_tool_path_rewrites_backslashes():
    assert inout.to_tool_path("C:\\data\\orders.json") == "C:/data/orders.json"
    assert inout.to_tool_path("/data/orders.json") == "/data/orders.json"


def test_verbosity_flags():
    assert LogVerbosity.QUIET.tool_flag == "--quiet"
    assert LogVerbosity.NORMAL.tool_flag is None
    assert LogVerbosity.VERBOSE.tool_flag == "--verbose"
    assert LogVerbosity.VERBOSE > LogVerbosity.NORMAL > LogVerbosity.QUIET
    assert LogVerbosity.parse("Verbose") is LogVerbosity.VERBOSE


def test_connection_info_host_and_uri():
    connection = ConnectionInfo("10.0.0.5", 27017)

    assert connection.host == "10.0.0.5:27017"
    assert connection.uri == "mongodb://10.0.0.5:27017"


def test_import_missing_file_spawns_nothing(monkeypatch, tmp_path, output_helper):
    def fail_popen(*args, **kwargs):
        raise AssertionError("no process must be spawned")

    monkeypatch.setattr(process_runner.subprocess, "Popen", fail_popen)
    tools = MongoTools(ConnectionInfo("127.0.0.1", 27017), InstanceOptions(output_helper=output_helper))

    with pytest.raises(FileNotFoundError) as exc_info:
        tools.import_data("shop", "orders", str(tmp_path / "missing.json"))

    assert "missing.json" in str(exc_info.value)
    assert output_helper.lines == []


def test_import_builds_arguments(monkeypatch, source_file, output_helper):
    captured = {}

    def fake_run_tool(invocation, on_stdout=None, on_stderr=None):
        captured["invocation"] = invocation
        return process_runner.InvocationResult(exit_code=0)

    monkeypatch.setattr(inout, "run_tool", fake_run_tool)
    options = InstanceOptions(log_verbosity=LogVerbosity.QUIET, output_helper=output_helper)
    tools = MongoTools(ConnectionInfo("127.0.0.1", 27123), options, "/opt/mongo/bin")

    tools.import_data("shop", "orders", str(source_file), timeout=1234)

    invocation = captured["invocation"]
    assert invocation.tool == "mongoimport"
    assert invocation.binary_path == "/opt/mongo/bin"
    assert invocation.timeout == 1234
    assert invocation.args == [
        "--host", "127.0.0.1:27123",
        "--db", "shop",
        "--collection", "orders",
        "--file", str(source_file).replace("\\", "/"),
        "--drop",
        "--quiet",
    ]


def test_export_builds_arguments(monkeypatch, tmp_path, output_helper):
    captured = {}

    def fake_run_tool(invocation, on_stdout=None, on_stderr=None):
        captured["invocation"] = invocation
        return process_runner.InvocationResult(exit_code=0)

    monkeypatch.setattr(inout, "run_tool", fake_run_tool)
    options = InstanceOptions(log_verbosity=LogVerbosity.VERBOSE, output_helper=output_helper)
    tools = MongoTools(ConnectionInfo("127.0.0.1", 27123), options, "/opt/mongo/bin")

    tools.export_data("shop", "orders", "out\\orders.json")

    invocation = captured["invocation"]
    assert invocation.tool == "mongoexport"
    assert invocation.timeout == 5000
    assert invocation.args == [
        "--host", "127.0.0.1:27123",
        "--db", "shop",
        "--collection", "orders",
        "--out", "out/orders.json",
        "--verbose",
    ]
    assert output_helper.lines == ["Successfully exported shop/orders to out/orders.json"]


@posix_only
def test_import_success_normal_verbosity(fake_tools, source_file, output_helper):
    tools = make_tools(fake_tools, output_helper)

    tools.import_data("shop", "orders", str(source_file), drop_collection=False)

    args = fake_tools.recorded_args("mongoimport")
    assert "--drop" not in args
    assert "--quiet" not in args and "--verbose" not in args
    assert output_helper.lines == []


@posix_only
def test_import_success_verbose_emits_one_notice(fake_tools, source_file, output_helper):
    tools = make_tools(fake_tools, output_helper, LogVerbosity.VERBOSE)

    tools.import_data("shop", "orders", str(source_file))

    notices = [line for line in output_helper.lines if line.startswith("Successfully")]
    assert notices == [f"Successfully imported {source_file} to shop/orders"]
    assert "mongoimport started" in output_helper.lines
    assert "--verbose" in fake_tools.recorded_args("mongoimport")


@posix_only
def test_import_non_zero_exit_raises_exit_code_error(fake_tools, source_file, output_helper):
    fake_tools.set_exit_code(3)
    tools = make_tools(fake_tools, output_helper, LogVerbosity.VERBOSE)

    with pytest.raises(ExitCodeError) as exc_info:
        tools.import_data("shop", "orders", str(source_file))

    assert exc_info.value.exit_code == 3
    message = str(exc_info.value)
    assert str(source_file) in message
    assert "shop/orders" in message
    assert "Exit code 3" in message
    assert not any(line.startswith("Successfully") for line in output_helper.lines)


@posix_only
def test_import_timeout_raises(fake_tools, source_file, output_helper):
    fake_tools.set_sleep(30)
    tools = make_tools(fake_tools, output_helper)

    with pytest.raises(MongoToolTimeoutError) as exc_info:
        tools.import_data("shop", "orders", str(source_file), timeout=300)

    assert isinstance(exc_info.value, TimeoutError)
    assert exc_info.value.timeout == 300
    message = str(exc_info.value)
    assert str(source_file) in message
    assert "shop/orders" in message
    assert "300 milliseconds" in message


@posix_only
def test_export_non_zero_exit_raises_exit_code_error(fake_tools, tmp_path, output_helper):
    fake_tools.set_exit_code(1)
    tools = make_tools(fake_tools, output_helper)
    destination = tmp_path / "out.json"

    with pytest.raises(ExitCodeError) as exc_info:
        tools.export_data("shop", "orders", str(destination))

    assert exc_info.value.exit_code == 1
    assert "shop/orders" in str(exc_info.value)


@posix_only
def test_export_timeout_raises(fake_tools, tmp_path, output_helper):
    fake_tools.set_sleep(30)
    tools = make_tools(fake_tools, output_helper)

    with pytest.raises(MongoToolTimeoutError) as exc_info:
        tools.export_data("shop", "orders", str(tmp_path / "out.json"), timeout=300)

    assert "after 300 milliseconds" in str(exc_info.value)
