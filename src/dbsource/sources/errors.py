"""Database error classification.

Maps driver failures to USER / SYSTEM / UNKNOWN and renders the message
shown to the user. Each dialect composes an ``ErrorClassifier`` from a
rule table and an optional documentation link; CloudSQL variants reuse
the base table with a different link.

Usage:
    classifier = get_dialect("postgres").error_classifier
    details = classifier.get_exception_details(exc, phase="schema probe")
    if details is not None:
        raise QueryExecutionError(details) from exc
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel
from sqlalchemy.exc import DBAPIError

from dbsource.core.exceptions import ClassifiedError, ConnectorError, QueryExecutionError
from dbsource.core.models.base import ErrorType

PLUGIN_CATEGORY = "plugin"

# Phases a database failure can happen in
PHASE_CONNECT = "connect"
PHASE_SCHEMA_PROBE = "schema probe"
PHASE_BOUNDING_QUERY = "bounding query"
PHASE_SPLIT_EXECUTION = "split execution"

# DB-API 2.0 base classes every driver exposes
_DBAPI_ERROR_CLASS_NAMES = frozenset({"DatabaseError", "InterfaceError"})


class ErrorClassification(BaseModel):
    """A classified failure, ready to surface to the host."""

    category: str = PLUGIN_CATEGORY
    subcategory: str | None = None
    error_type: ErrorType
    message: str
    detailed_message: str
    error_code: int | None = None
    sql_state: str | None = None
    documentation_link: str | None = None
    phase: str | None = None


@dataclass(frozen=True)
class SqlErrorInfo:
    """Driver-independent view of a SQL error."""

    message: str
    error_code: int | None = None
    sql_state: str | None = None


@dataclass(frozen=True)
class ErrorCodeRules:
    """Static lookup table of one dialect.

    Attributes:
        sql_state_types: 2-character SQL-state class -> error type
        sql_state_categories: 2-character SQL-state class -> category name
        code_ranges: Inclusive (low, high, type) ranges of vendor error codes
    """

    sql_state_types: Mapping[str, ErrorType] = field(default_factory=dict)
    sql_state_categories: Mapping[str, str] = field(default_factory=dict)
    code_ranges: tuple[tuple[int, int, ErrorType], ...] = ()

    def error_type(self, error_code: int | None, sql_state: str | None) -> ErrorType:
        state_class = _state_class(sql_state)
        if state_class in self.sql_state_types:
            return self.sql_state_types[state_class]
        if error_code is not None:
            for low, high, error_type in self.code_ranges:
                if low <= error_code <= high:
                    return error_type
        return ErrorType.UNKNOWN

    def category(self, sql_state: str | None) -> str | None:
        return self.sql_state_categories.get(_state_class(sql_state) or "")


@dataclass(frozen=True)
class ErrorClassifier:
    """Per-dialect error classifier."""

    name: str
    rules: ErrorCodeRules = field(default_factory=ErrorCodeRules)
    documentation_link: str | None = None

    def classify(self, error_code: Any, sql_state: str | None) -> ErrorType:
        """Classify an error code / SQL state. Never raises."""
        return self.rules.error_type(_as_int(error_code), sql_state)

    def with_overrides(
        self,
        *,
        name: str | None = None,
        documentation_link: str | None = None,
        sql_state_types: Mapping[str, ErrorType] | None = None,
        code_ranges: tuple[tuple[int, int, ErrorType], ...] = (),
    ) -> ErrorClassifier:
        """Derive a classifier sharing this one's table.

        Extra SQL-state mappings win over the base table; extra code
        ranges are checked before the base ranges.
        """
        rules = dataclasses.replace(
            self.rules,
            sql_state_types={**self.rules.sql_state_types, **(sql_state_types or {})},
            code_ranges=code_ranges + self.rules.code_ranges,
        )
        return dataclasses.replace(
            self,
            name=name or self.name,
            rules=rules,
            documentation_link=documentation_link or self.documentation_link,
        )

    def get_exception_details(
        self, exc: BaseException, phase: str
    ) -> ErrorClassification | None:
        """Classify the first recognized error in the causal chain.

        Returns None when the chain already holds a classified error, or
        when nothing in it is recognized.
        """
        for link in causal_chain(exc):
            if isinstance(link, ClassifiedError):
                return None
            if is_driver_error(link):
                return self._from_sql_error(link, phase)
            if isinstance(link, ValueError):
                return self._from_plain_error(link, phase, ErrorType.USER)
            if isinstance(link, RuntimeError):
                return self._from_plain_error(link, phase, ErrorType.SYSTEM)
        return None

    def _from_sql_error(self, exc: BaseException, phase: str) -> ErrorClassification:
        info = extract_sql_error(exc)
        return ErrorClassification(
            subcategory=self.rules.category(info.sql_state),
            error_type=self.classify(info.error_code, info.sql_state),
            message=info.message,
            detailed_message=format_sql_error_message(
                phase, info.message, info.error_code, info.sql_state, self.documentation_link
            ),
            error_code=info.error_code,
            sql_state=info.sql_state,
            documentation_link=self.documentation_link,
            phase=phase,
        )

    def _from_plain_error(
        self, exc: BaseException, phase: str, error_type: ErrorType
    ) -> ErrorClassification:
        message = str(exc)
        return ErrorClassification(
            error_type=error_type,
            message=message,
            detailed_message=f"Error occurred in the phase: '{phase}'. Error message: {message}",
            phase=phase,
        )


def format_sql_error_message(
    phase: str,
    message: str,
    error_code: int | None,
    sql_state: str | None,
    documentation_link: str | None = None,
) -> str:
    """Render a SQL failure for humans, optionally pointing at vendor docs."""
    text = (
        f"Error occurred in the phase: '{phase}'. Error message: '{message}'. "
        f"Error code: '{error_code}'. sqlState: '{sql_state}'"
    )
    if documentation_link:
        if not text.endswith("."):
            text += "."
        text = f"{text} For more details, see {documentation_link}"
    return text


def causal_chain(exc: BaseException) -> list[BaseException]:
    """Return exc followed by its causes, outermost first."""
    chain: list[BaseException] = []
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        chain.append(current)
        if current.__cause__ is not None:
            current = current.__cause__
        elif not current.__suppress_context__:
            current = current.__context__
        else:
            current = None
    return chain


def is_driver_error(exc: BaseException) -> bool:
    """Check whether exc is a DB-API driver error (or SQLAlchemy's wrapper of one)."""
    if isinstance(exc, DBAPIError):
        return True
    return any(
        cls.__name__ in _DBAPI_ERROR_CLASS_NAMES and cls.__module__ != "builtins"
        for cls in type(exc).__mro__
    )


def extract_sql_error(exc: BaseException) -> SqlErrorInfo:
    """Read message, vendor code and SQL state from a driver error.

    Knows the attribute conventions of psycopg (``sqlstate``), psycopg2
    (``pgcode``), PyMySQL (``args = (code, message)``) and python-oracledb
    (``args[0].code``). SQLAlchemy wrappers are unwrapped via ``orig``.
    """
    inner: BaseException = exc
    if isinstance(exc, DBAPIError) and isinstance(exc.orig, BaseException):
        inner = exc.orig

    message = str(inner)
    error_code = _as_int(getattr(inner, "errno", None))
    sql_state = getattr(inner, "sqlstate", None) or getattr(inner, "pgcode", None)

    args = getattr(inner, "args", ())
    if args:
        first = args[0]
        if isinstance(first, int) and not isinstance(first, bool):
            # PyMySQL: (code, message)
            error_code = first
            if len(args) > 1:
                message = str(args[1])
        elif hasattr(first, "code") and hasattr(first, "message"):
            # python-oracledb: _Error object
            error_code = _as_int(first.code)
            message = str(first.message)

    return SqlErrorInfo(
        message=message,
        error_code=error_code,
        sql_state=sql_state if isinstance(sql_state, str) else None,
    )


def classify(dialect: str, error_code: Any, sql_state: str | None) -> ErrorType:
    """Classify an error for a dialect by name."""
    from dbsource.sources.dialects import get_dialect

    return get_dialect(dialect).error_classifier.classify(error_code, sql_state)


def documentation_link(dialect: str) -> str | None:
    """External error reference of a dialect, if it has one."""
    from dbsource.sources.dialects import get_dialect

    return get_dialect(dialect).error_classifier.documentation_link


def _state_class(sql_state: str | None) -> str | None:
    if not sql_state or len(sql_state) < 2:
        return None
    return sql_state[:2].upper()


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


@contextmanager
def classified_errors(
    classifier: ErrorClassifier,
    phase: str,
    error_cls: type[ClassifiedError] = QueryExecutionError,
) -> Iterator[None]:
    """Re-raise failures in the block as classified errors.

    The original exception stays attached as ``__cause__``. Connector
    errors, classified or not, propagate unchanged, and so do failures
    the classifier does not recognize.

    Usage:
        with classified_errors(dialect.error_classifier, PHASE_SCHEMA_PROBE):
            cursor.execute(query)
    """
    try:
        yield
    except ConnectorError:
        raise
    except Exception as e:
        details = classifier.get_exception_details(e, phase)
        if details is None:
            raise
        raise error_cls(details) from e
