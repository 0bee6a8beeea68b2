"""
================================================================================
Allure Report Utilities
================================================================================

Helpers for putting MongoDB tool runs into Allure test reports.

Features:
- Text / JSON attachment helpers
- Command line and captured output attachments for tool invocations

Outside an Allure-enabled pytest session the calls are no-ops.

================================================================================
"""

import json
import shlex
from typing import TYPE_CHECKING, Any

import allure

if TYPE_CHECKING:
    from amongst_tools.mongo_tools.process_runner import InvocationResult, ToolInvocation


# Maximum captured output length to include in Allure reports
MAX_OUTPUT_LENGTH = 10000


def attach_json(data: Any, name: str = "Data"):
    """
    Attach JSON data to Allure report.

    Args:
        data: Data to attach (will be JSON serialized)
        name: Attachment name
    """
    json_str = json.dumps(data, indent=2, default=str)
    allure.attach(
        json_str,
        name=name,
        attachment_type=allure.attachment_type.JSON
    )


def attach_text(text: str, name: str = "Text"):
    """
    Attach text content to Allure report.

    Args:
        text: Text to attach
        name: Attachment name
    """
    if len(text) > MAX_OUTPUT_LENGTH:
        text = text[:MAX_OUTPUT_LENGTH] + "\n... (truncated)"
    allure.attach(
        text,
        name=name,
        attachment_type=allure.attachment_type.TEXT
    )


def attach_invocation(invocation: "ToolInvocation", result: "InvocationResult"):
    """
    Attach the command line and captured streams of one tool run.

    Args:
        invocation: The launched tool
        result: Its outcome
    """
    attach_text(shlex.join(invocation.command), name=f"{invocation.tool} command")
    attach_json(
        {
            "exit_code": result.exit_code,
            "completed": result.completed,
            "timeout_ms": invocation.timeout,
        },
        name=f"{invocation.tool} result",
    )
    if result.stdout_lines:
        attach_text("\n".join(result.stdout_lines), name=f"{invocation.tool} stdout")
    if result.stderr_lines:
        attach_text("\n".join(result.stderr_lines), name=f"{invocation.tool} stderr")


__all__ = [
    "attach_invocation",
    "attach_json",
    "attach_text",
]
