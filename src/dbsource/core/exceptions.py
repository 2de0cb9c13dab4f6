"""Connector error taxonomy.

Configuration problems are detected before any I/O and reported together.
Database failures are classified once, wrapped with the phase they happened
in, and keep the driver error as ``__cause__``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from dbsource.core.models.base import ValidationFailure

if TYPE_CHECKING:
    from dbsource.sources.errors import ErrorClassification


class ConnectorError(Exception):
    """Base class for all connector errors."""


class ConfigurationError(ConnectorError, ValueError):
    """Missing or invalid configuration."""

    def __init__(self, message: str, failures: list[ValidationFailure] | None = None):
        super().__init__(message)
        self.failures = failures or [ValidationFailure(message=message)]

    @classmethod
    def from_failures(cls, failures: list[ValidationFailure]) -> ConfigurationError:
        if len(failures) == 1:
            return cls(str(failures[0]), failures)
        lines = "\n".join(f"- {failure}" for failure in failures)
        return cls(f"{len(failures)} configuration errors:\n{lines}", failures)


class SchemaMismatchError(ConnectorError, ValueError):
    """Declared schema is incompatible with the schema discovered from the database."""

    def __init__(self, failures: list[ValidationFailure]):
        lines = "\n".join(f"- {failure}" for failure in failures)
        super().__init__(f"Declared schema does not match the database:\n{lines}")
        self.failures = failures


class DriverUnavailableError(ConnectorError, RuntimeError):
    """The database driver cannot be loaded."""


class ClassifiedError(ConnectorError):
    """A failure that already went through error classification.

    Seeing one of these in a causal chain means the failure must not be
    classified again.
    """

    def __init__(self, classification: ErrorClassification):
        super().__init__(classification.detailed_message)
        self.classification = classification

    @property
    def phase(self) -> str | None:
        return self.classification.phase


class SourceConnectionError(ClassifiedError):
    """The database could not be reached."""


class QueryExecutionError(ClassifiedError):
    """A probe, bounding or split query failed at the database."""
