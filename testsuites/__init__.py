"""
Test suites package.

Kept importable so IDE navigation and programmatic runners resolve it.
Unit tests use stand-in executables; integration tests need a real
MongoDB installation and skip otherwise.
"""
