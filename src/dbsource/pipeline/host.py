"""Host collaborators of a source.

The pipeline host owns failure reporting, lineage and split scheduling.
A source only sees these protocols; the in-process implementations below
are what a standalone run (and the tests) use.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from dbsource.core.exceptions import ConfigurationError
from dbsource.core.logging import get_logger
from dbsource.core.models.base import ValidationFailure

if TYPE_CHECKING:
    from dbsource.sources.descriptor import RunDescriptor

logger = get_logger(__name__)


class FailureCollector(Protocol):
    """Collects validation failures and raises them together."""

    def add_failure(self, failure: ValidationFailure) -> None: ...

    def get_or_raise(self) -> None:
        """Raise if any failure was added."""
        ...


class MacroEvaluator(Protocol):
    """Tells which properties still hold an unresolved macro."""

    def contains_macro(self, prop: str) -> bool: ...


class LineageRecorder(Protocol):
    """Records the fields a source reads."""

    def record_read(self, operation: str, description: str, fields: Sequence[str]) -> None: ...


class SplitQuerySink(Protocol):
    """Receives the prepared run for scheduling."""

    def submit(self, descriptor: RunDescriptor) -> None: ...


@dataclass
class ValidationCollector:
    """In-process failure collector."""

    failures: list[ValidationFailure] = field(default_factory=list)

    def add_failure(self, failure: ValidationFailure) -> None:
        logger.debug("validation_failure", message=failure.message)
        self.failures.append(failure)

    def get_or_raise(self) -> None:
        """Raise all collected failures as one ConfigurationError.

        Raises:
            ConfigurationError: If at least one failure was collected
        """
        if self.failures:
            raise ConfigurationError.from_failures(list(self.failures))

    @property
    def has_failures(self) -> bool:
        return bool(self.failures)


@dataclass
class LineageEntry:
    operation: str
    description: str
    fields: list[str]


@dataclass
class InMemoryLineage:
    """Lineage recorder keeping entries in memory."""

    entries: list[LineageEntry] = field(default_factory=list)

    def record_read(self, operation: str, description: str, fields: Sequence[str]) -> None:
        self.entries.append(LineageEntry(operation, description, list(fields)))


@dataclass
class CollectingSink:
    """Split query sink keeping submitted runs in memory."""

    descriptors: list[RunDescriptor] = field(default_factory=list)

    def submit(self, descriptor: RunDescriptor) -> None:
        self.descriptors.append(descriptor)
