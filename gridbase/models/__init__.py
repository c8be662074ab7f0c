# File: /gridbase/models/__init__.py | Version: 1.0 | Title: Models Package Exports
from .grid import ColumnType, GridColumn, GridRow, GridTable
from .view import GridView

__all__ = [
    "ColumnType",
    "GridTable",
    "GridColumn",
    "GridRow",
    "GridView",
]
