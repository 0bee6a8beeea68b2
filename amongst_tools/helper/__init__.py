"""
Filesystem helpers for locating MongoDB installations.
"""

from .folder_search import DEFAULT_RECURSION_DEPTH, find_downwards, find_upwards

__all__ = [
    "DEFAULT_RECURSION_DEPTH",
    "find_downwards",
    "find_upwards",
]
