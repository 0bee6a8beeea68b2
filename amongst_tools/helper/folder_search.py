"""
================================================================================
Folder Search
================================================================================

Bounded directory lookup used to locate MongoDB binary folders on disk.

Two directions are supported:
    - find_downwards: checks the start folder, then walks toward the
      filesystem root one segment at a time
    - find_upwards: checks the start folder, then descends depth-first
      into its subfolders

Both return the first matching directory path or None. A missing folder
or an empty match is the normal "keep searching" signal; any other
filesystem error propagates to the caller.

Usage:
    from amongst_tools.helper import find_downwards

    tools_dir = find_downwards(os.getcwd(), "mongodb*")

================================================================================
"""

import fnmatch
import os
from typing import List, Optional

from loguru import logger


DEFAULT_RECURSION_DEPTH = 6


def _get_directories(path: str, pattern: str = "*") -> List[str]:
    """
    Lists subdirectories of ``path`` whose name matches ``pattern``.

    The pattern may carry a relative folder prefix ("tools/mongodb*");
    wildcards only apply to the last segment. Order follows the
    underlying directory listing.

    Raises:
        FileNotFoundError, NotADirectoryError: the folder does not exist.
    """
    head, _, tail = pattern.replace("\\", "/").rpartition("/")
    base = os.path.join(path, *head.split("/")) if head else path

    with os.scandir(base) as entries:
        return [
            entry.path for entry in entries
            if entry.is_dir() and fnmatch.fnmatch(entry.name, tail)
        ]


def _first_match(path: str, pattern: str) -> Optional[str]:
    try:
        matches = _get_directories(path, pattern)
    except (FileNotFoundError, NotADirectoryError):
        return None
    return matches[0] if matches else None


def find_downwards(
    path: str,
    pattern: str,
    max_recursion: int = DEFAULT_RECURSION_DEPTH
) -> Optional[str]:
    """
    Searches for a folder downwards the hierarchy, toward the root.

    Each step looks for a direct child of ``path`` matching ``pattern``;
    on a miss the last path segment is stripped and the search retried.
    The search stops after ``max_recursion`` steps, or as soon as the
    path has been reduced to a single segment.

    Args:
        path: Start path.
        pattern: Search pattern. Can be a relative path.
        max_recursion: The max recursion depth. 6 by default.

    Returns:
        A matching directory path, or None if there are no results.
    """
    path = os.path.normpath(path)

    for step in range(max_recursion + 1):
        match = _first_match(path, pattern)
        if match is not None:
            logger.debug(f"Found '{pattern}' at {match}")
            return match

        sections = path.split(os.sep)
        if step == max_recursion or len(sections) <= 1:
            break

        path = os.sep.join(sections[:-1])

    logger.debug(f"No folder matching '{pattern}' found downwards")
    return None


def find_upwards(
    path: str,
    pattern: str,
    max_recursion: int = DEFAULT_RECURSION_DEPTH
) -> Optional[str]:
    """
    Searches for a folder upwards the hierarchy, into subfolders.

    Direct children of ``path`` are checked first, then each subfolder is
    searched depth-first in listing order. Depth is counted from the
    original start path.

    Args:
        path: Start path.
        pattern: Search pattern. Can be a relative path.
        max_recursion: The maximum recursion depth. 6 by default.

    Returns:
        A matching directory path, or None if there are no results.
    """
    return _find_upwards(path, pattern, 0, max_recursion)


def _find_upwards(path: str, pattern: str, depth: int, max_recursion: int) -> Optional[str]:
    match = _first_match(path, pattern)
    if match is not None:
        return match

    if depth > max_recursion:
        return None

    try:
        subdirs = _get_directories(path)
    except (FileNotFoundError, NotADirectoryError):
        return None

    for subdir in subdirs:
        result = _find_upwards(subdir, pattern, depth + 1, max_recursion)
        if result is not None:
            return result

    return None


__all__ = [
    "DEFAULT_RECURSION_DEPTH",
    "find_downwards",
    "find_upwards",
]
