"""Error kinds raised along the ingestion pipeline."""

from __future__ import annotations

from typing import Any

INCOMPLETE = "incomplete"
INVALID = "invalid"


class MalformedPayload(ValueError):
    """A line or request body does not match the expected sensor shape."""

    def __init__(self, message: str, raw: Any = None, reason: str = INVALID) -> None:
        super().__init__(message)
        self.raw = raw
        self.reason = reason


class StoreUnavailable(RuntimeError):
    """The record store cannot serve the call right now."""


class StoreConnectFailure(StoreUnavailable):
    """Opening a connection to the record store failed."""


class TransportOpenFailure(OSError):
    """The serial device could not be opened."""
