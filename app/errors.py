"""Exceptions that abort an update run."""

from __future__ import annotations


class UpdateError(Exception):
    """Base class for failures that abort an update run."""


class TransientExternalError(UpdateError):
    """Network or timeout failure against the scrape source."""


class ZeroQualifyingFilmsError(UpdateError):
    """The scrape produced no film rated at or above the threshold."""


class PersistenceError(UpdateError):
    """Raised when a collection file cannot be written."""
