# File: /gridbase/__init__.py | Version: 1.0 | Title: gridbase package
"""Spreadsheet-style grid: schemaless row store, row query engine and client row cache."""

__version__ = "0.1.0"
