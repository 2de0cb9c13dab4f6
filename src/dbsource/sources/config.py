"""Database source configuration.

Fields arrive from the host with macros either resolved or still pending.
A pending field is DEFERRED: validation that depends on it is skipped
until the host resolves it at run time.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import TYPE_CHECKING, Any, get_args

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from dbsource.core.exceptions import ConfigurationError
from dbsource.core.models.base import ValidationFailure
from dbsource.sources.query import CONDITIONS_TOKEN, clean_query, has_conditions
from dbsource.sources.schema import RecordSchema

if TYPE_CHECKING:
    from dbsource.pipeline.host import FailureCollector, MacroEvaluator

# Host-facing property names
REFERENCE_NAME = "referenceName"
DIALECT = "dialect"
HOST = "host"
PORT = "port"
DATABASE = "database"
USER = "user"
PASSWORD = "password"
CONNECTION_STRING = "connectionString"
IMPORT_QUERY = "importQuery"
BOUNDING_QUERY = "boundingQuery"
SPLIT_BY = "splitBy"
NUM_SPLITS = "numSplits"
SCHEMA = "schema"
INIT_QUERIES = "initQueries"
FETCH_SIZE = "fetchSize"
TRANSACTION_ISOLATION_LEVEL = "transactionIsolationLevel"

_CONNECTION_PROPERTIES = (HOST, PORT, DATABASE, USER, PASSWORD, CONNECTION_STRING)

_MACRO = re.compile(r"\$\{[^}]*\}")

# Host value -> SQLAlchemy isolation_level
ISOLATION_LEVELS = {
    "TRANSACTION_READ_UNCOMMITTED": "READ UNCOMMITTED",
    "TRANSACTION_READ_COMMITTED": "READ COMMITTED",
    "TRANSACTION_REPEATABLE_READ": "REPEATABLE READ",
    "TRANSACTION_SERIALIZABLE": "SERIALIZABLE",
}


class FieldState(str, Enum):
    """Resolution state of a configuration field."""

    RESOLVED = "resolved"
    DEFERRED = "deferred"  # Contains a macro the host has not resolved yet
    ABSENT = "absent"


class DatabaseSourceConfig(BaseModel):
    """Configuration of one database batch source.

    Accepts the host's camelCase property names (``importQuery``) as well
    as the Python field names (``import_query``).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    reference_name: str = Field(default="database_source", alias=REFERENCE_NAME)
    dialect: str

    # Connection
    host: str | None = None
    port: int | None = None
    database: str | None = None
    user: str | None = None
    password: SecretStr | None = None
    connection_string: str | None = Field(
        default=None,
        alias=CONNECTION_STRING,
        description="Full SQLAlchemy URL; overrides host/port/database",
    )
    connection_arguments: dict[str, str] = Field(default_factory=dict, alias="connectionArguments")

    # Reading
    import_query: str | None = Field(default=None, alias=IMPORT_QUERY)
    bounding_query: str | None = Field(default=None, alias=BOUNDING_QUERY)
    split_by: str | None = Field(default=None, alias=SPLIT_BY)
    num_splits: int | None = Field(default=None, alias=NUM_SPLITS)
    declared_schema_json: str | None = Field(default=None, alias=SCHEMA)
    init_queries: list[str] = Field(default_factory=list, alias=INIT_QUERIES)
    fetch_size: int | None = Field(default=None, alias=FETCH_SIZE)
    transaction_isolation_level: str | None = Field(
        default=None, alias=TRANSACTION_ISOLATION_LEVEL
    )

    # Properties whose value still contains an unresolved macro
    macro_fields: frozenset[str] = Field(default_factory=frozenset, alias="macroFields")

    @classmethod
    def from_host(
        cls, properties: dict[str, Any], macros: MacroEvaluator | None = None
    ) -> DatabaseSourceConfig:
        """Build a config from raw host properties.

        Properties the host reports as macro-bearing are recorded in
        ``macro_fields``. Their raw values are kept only where the field
        holds text, since e.g. ``${splits}`` is not a valid split count.
        """
        deferred = {p for p in properties if macros is not None and macros.contains_macro(p)}
        values = {
            prop: value
            for prop, value in properties.items()
            if prop not in deferred or cls._holds_text(prop)
        }
        return cls.model_validate({**values, "macroFields": frozenset(deferred)})

    @classmethod
    def _holds_text(cls, prop: str) -> bool:
        for name, info in cls.model_fields.items():
            if info.alias == prop or name == prop:
                annotation = info.annotation
                return annotation in (str, SecretStr) or any(
                    arg in (str, SecretStr) for arg in get_args(annotation)
                )
        return False

    def field_state(self, prop: str) -> FieldState:
        """Resolution state of a host property."""
        if prop in self.macro_fields:
            return FieldState.DEFERRED
        value = self._raw(prop)
        if isinstance(value, str) and _MACRO.search(value):
            return FieldState.DEFERRED
        if value is None or (isinstance(value, str | list | dict) and not value):
            return FieldState.ABSENT
        return FieldState.RESOLVED

    def is_deferred(self, prop: str) -> bool:
        return self.field_state(prop) == FieldState.DEFERRED

    def _raw(self, prop: str) -> Any:
        for name, info in type(self).model_fields.items():
            if info.alias == prop or name == prop:
                value = getattr(self, name)
                if isinstance(value, SecretStr):
                    return value.get_secret_value()
                return value
        raise KeyError(prop)

    # === Accessors ===

    def get_import_query(self) -> str | None:
        return clean_query(self.import_query)

    def get_bounding_query(self) -> str | None:
        return clean_query(self.bounding_query)

    @property
    def has_one_split(self) -> bool:
        return not self.is_deferred(NUM_SPLITS) and self.num_splits == 1

    @property
    def declared_schema(self) -> RecordSchema | None:
        """User-declared output schema.

        Raises:
            ConfigurationError: If the schema JSON cannot be parsed
        """
        if not self.declared_schema_json or not self.declared_schema_json.strip():
            return None
        return RecordSchema.parse_json(self.declared_schema_json)

    @property
    def isolation_level(self) -> str | None:
        """SQLAlchemy ``isolation_level`` for the configured level, if any."""
        if not self.transaction_isolation_level:
            return None
        return ISOLATION_LEVELS.get(self.transaction_isolation_level.strip().upper())

    def get_init_queries(self) -> list[str]:
        return [q for q in (clean_query(q) for q in self.init_queries) if q]

    def can_connect(self) -> bool:
        """Whether the database can be reached at configure time."""
        return not any(
            self.is_deferred(prop) for prop in (*_CONNECTION_PROPERTIES, IMPORT_QUERY, DIALECT)
        )

    # === Validation ===

    def validate_config(self, collector: FailureCollector) -> None:
        """Add every configuration violation to the collector.

        Deferred fields are skipped. Nothing is raised here; the caller
        decides when to stop via ``collector.get_or_raise()``.
        """
        if not self.is_deferred(DIALECT):
            from dbsource.sources.dialects import get_dialect

            try:
                get_dialect(self.dialect)
            except ConfigurationError as e:
                collector.add_failure(ValidationFailure(message=str(e), config_properties=[DIALECT]))

        splits_deferred = self.is_deferred(NUM_SPLITS)
        if not splits_deferred and self.num_splits is not None and self.num_splits < 1:
            collector.add_failure(
                ValidationFailure(
                    message=f"Invalid value for numSplits '{self.num_splits}'. Must be at least 1.",
                    config_properties=[NUM_SPLITS],
                )
            )

        if (
            self.field_state(TRANSACTION_ISOLATION_LEVEL) == FieldState.RESOLVED
            and self.isolation_level is None
        ):
            supported = ", ".join(ISOLATION_LEVELS)
            collector.add_failure(
                ValidationFailure(
                    message=(
                        f"Transaction isolation level '{self.transaction_isolation_level}' "
                        "is not supported."
                    ),
                    corrective_action=f"Use one of: {supported}.",
                    config_properties=[TRANSACTION_ISOLATION_LEVEL],
                )
            )

        if self.field_state(IMPORT_QUERY) == FieldState.ABSENT:
            collector.add_failure(
                ValidationFailure(
                    message="Import Query must be specified.", config_properties=[IMPORT_QUERY]
                )
            )

        needs_splitting = not self.has_one_split and not splits_deferred

        import_query = self.get_import_query()
        if (
            needs_splitting
            and self.field_state(IMPORT_QUERY) == FieldState.RESOLVED
            and import_query
            and not has_conditions(import_query)
        ):
            collector.add_failure(
                ValidationFailure(
                    message="Invalid Import Query.",
                    corrective_action=(
                        f"Import Query {self.import_query} must contain the string "
                        f"'{CONDITIONS_TOKEN}'."
                    ),
                    config_properties=[IMPORT_QUERY],
                )
            )

        if needs_splitting and self.field_state(SPLIT_BY) == FieldState.ABSENT:
            collector.add_failure(
                ValidationFailure(
                    message="Split-By Field Name must be specified if Number of Splits is not set to 1.",
                    config_properties=[SPLIT_BY, NUM_SPLITS],
                )
            )

        if needs_splitting and self.field_state(BOUNDING_QUERY) == FieldState.ABSENT:
            collector.add_failure(
                ValidationFailure(
                    message="Bounding Query must be specified if Number of Splits is not set to 1.",
                    config_properties=[BOUNDING_QUERY, NUM_SPLITS],
                )
            )

        if not self.is_deferred(FETCH_SIZE) and self.fetch_size is not None and self.fetch_size < 1:
            collector.add_failure(
                ValidationFailure(
                    message=f"Invalid fetch size '{self.fetch_size}'. Must be at least 1.",
                    config_properties=[FETCH_SIZE],
                )
            )

        try:
            self.declared_schema
        except ConfigurationError as e:
            collector.add_failure(ValidationFailure(message=str(e), config_properties=[SCHEMA]))
