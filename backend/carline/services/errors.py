"""Exception types shared by the graph engine, catalog and client."""

from __future__ import annotations


class CarlineError(Exception):
    """Base class for all carline errors."""


class DataFetchError(CarlineError):
    """The Data Service could not be reached or returned an unusable reply."""


class MalformedGraphSnapshotError(CarlineError, ValueError):
    """A graph payload is missing ``nodes``/``links`` or fails validation."""


class ValidationFailure(CarlineError, ValueError):
    """A write payload was rejected before any request was sent."""


class CatalogConstraintError(CarlineError, ValueError):
    """A catalog write violates a table constraint."""

    def __init__(self, constraint: str, message: str):
        super().__init__(f"{constraint}: {message}")
        self.constraint = constraint
        self.message = message
