"""Quarry exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class QuarryError(Exception):
    """Base exception for all Quarry failures."""


class QuarryConfigError(QuarryError):
    """Raised for invalid runtime or run configuration."""


class QuarryIngestError(QuarryError):
    """Raised when the record reader fails."""


class QuarryConversionError(QuarryError):
    """Raised when a single record cannot be converted into a document."""


class QuarryParseError(QuarryConversionError):
    """Raised for malformed integer or float text."""


class QuarryCastError(QuarryConversionError):
    """Raised when a raw value does not have the representation its type requires."""


class QuarryDocumentPathError(QuarryError):
    """Raised when a document path cannot be built for a record."""


class QuarrySinkError(QuarryError):
    """Raised when document writes cannot be applied."""


class QuarryTransientWriteError(QuarrySinkError):
    """Raised when writes fail with a status that may clear on retry."""


class QuarryDependencyError(QuarryError):
    """Raised when an optional runtime dependency is missing."""
