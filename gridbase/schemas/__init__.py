# File: /gridbase/schemas/__init__.py | Version: 1.0 | Path: /gridbase/schemas/__init__.py
from . import filters, grid, view

__all__ = ["filters", "grid", "view"]
