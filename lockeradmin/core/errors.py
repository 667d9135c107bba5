from __future__ import annotations


class ConnectivityError(Exception):
    """Raise when the document store cannot be reached or a write fails. Maps to HTTP 503."""


class ValidationError(Exception):
    """Raise to map to HTTP 422 (validation error)."""


class ParseError(ValueError):
    """A wire value could not be interpreted. Never escapes the ingestion boundary."""


class NotFoundError(Exception):
    """Raise to map to HTTP 404."""


class ConfirmationRequired(Exception):
    """Raise to map to HTTP 409 (destructive action not confirmed)."""


class WriteInProgress(Exception):
    """Raise to map to HTTP 409 (a bulk write from this dashboard is still in flight)."""
