"""Core module - configuration, logging, errors and shared models."""

from dbsource.core.config import Settings, get_settings
from dbsource.core.exceptions import (
    ClassifiedError,
    ConfigurationError,
    ConnectorError,
    DriverUnavailableError,
    QueryExecutionError,
    SchemaMismatchError,
    SourceConnectionError,
)
from dbsource.core.models.base import (
    ErrorType,
    FieldType,
    LogicalType,
    Result,
    SqlType,
    ValidationFailure,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Errors
    "ClassifiedError",
    "ConfigurationError",
    "ConnectorError",
    "DriverUnavailableError",
    "QueryExecutionError",
    "SchemaMismatchError",
    "SourceConnectionError",
    # Models - enums
    "ErrorType",
    "FieldType",
    "LogicalType",
    "SqlType",
    # Models - base data structures
    "Result",
    "ValidationFailure",
]
