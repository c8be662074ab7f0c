# File: /gridbase/core/errors.py | Version: 1.0 | Title: Domain error taxonomy shared by server and client
from __future__ import annotations


class GridError(Exception):
    """Base class for grid failures surfaced to a caller."""

    kind = "ERROR"

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind)
        self.message = message or self.kind


class NotFoundError(GridError):
    kind = "NOT_FOUND"


class ConflictError(GridError):
    kind = "CONFLICT"


class TransientWriteError(GridError):
    """A mutation failed at the transport or storage layer. Never retried."""

    kind = "TRANSIENT_WRITE_FAILURE"
