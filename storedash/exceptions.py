from __future__ import annotations

from typing import Optional


class StoredashError(Exception):
    """Base class for errors raised inside the dashboard core."""


class ApiError(StoredashError):
    """The performance API could not be reached or answered with an error."""

    def __init__(self, endpoint: str, message: str, status: Optional[int] = None):
        self.endpoint = endpoint
        self.status = status
        self.message = message
        detail = f"HTTP {status}" if status is not None else "request failed"
        super().__init__(f"{endpoint}: {detail}: {message}")
