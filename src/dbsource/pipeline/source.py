"""Database batch source.

Drives one source run through its states:

    CONFIGURED -> SCHEMA_PROBED -> SPLIT_PLANNED -> READY

and FAILED from any of them. Schema discovery and split planning run once,
sequentially, before any split is read; each database round trip opens
its own connection and closes it again.

Usage:
    source = ConnectorSource(config)
    descriptor = source.prepare_run(sink, lineage)

    # On a worker
    for record in read_split(row_source_for(config), descriptor, index=0):
        ...
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from typing import Any

from dbsource.core.config import get_settings
from dbsource.core.exceptions import ConfigurationError, ConnectorError, SchemaMismatchError
from dbsource.core.logging import get_logger, log_context
from dbsource.core.models.base import Result, SqlType, ValidationFailure
from dbsource.pipeline.host import (
    FailureCollector,
    LineageRecorder,
    SplitQuerySink,
    ValidationCollector,
)
from dbsource.sources.config import (
    BOUNDING_QUERY,
    IMPORT_QUERY,
    NUM_SPLITS,
    SPLIT_BY,
    DatabaseSourceConfig,
)
from dbsource.sources.descriptor import RunDescriptor, SplitQuery
from dbsource.sources.dialects import ColumnType, Dialect, get_dialect
from dbsource.sources.errors import PHASE_BOUNDING_QUERY, PHASE_SCHEMA_PROBE
from dbsource.sources.query import bind_split, strip_conditions
from dbsource.sources.row_source import RowSource, open_cursor, row_source_for, set_arraysize
from dbsource.sources.schema import RecordSchema, reconcile
from dbsource.sources.splits import SplitPlan, plan_splits

logger = get_logger(__name__)

LINEAGE_OPERATION = "Read"
LINEAGE_DESCRIPTION = "Read from database plugin"


class SourceState(str, Enum):
    """Lifecycle state of a source run."""

    CONFIGURED = "configured"
    SCHEMA_PROBED = "schema_probed"
    SPLIT_PLANNED = "split_planned"
    READY = "ready"
    FAILED = "failed"


class ConnectorSource:
    """Plans the parallel read of one database source.

    Args:
        config: Source configuration
        row_source: Connections to the database; defaults to one built
            from the configuration
    """

    def __init__(self, config: DatabaseSourceConfig, row_source: RowSource | None = None):
        self.config = config
        self._row_source = row_source
        self.state = SourceState.CONFIGURED

        self.discovered_schema: RecordSchema | None = None
        self.column_types: list[ColumnType] = []
        self.output_schema: RecordSchema | None = None
        self.split_plan: SplitPlan | None = None
        self.queries: list[SplitQuery] = []

    @property
    def dialect(self) -> Dialect:
        return get_dialect(self.config.dialect)

    @property
    def row_source(self) -> RowSource:
        if self._row_source is None:
            self._row_source = row_source_for(self.config)
        return self._row_source

    # === Transitions ===

    def validate(self, collector: FailureCollector | None = None) -> None:
        """Validate the configuration without touching the database.

        Raises:
            ConfigurationError: With every violation found
        """
        collector = collector or ValidationCollector()
        with self._failing():
            self.config.validate_config(collector)
            collector.get_or_raise()

    def probe_schema(self) -> RecordSchema:
        """Discover the output schema from the import query's result metadata.

        Runs the init queries, then the import query with the split token
        removed, fetching at most one row.

        Raises:
            SourceConnectionError: If the database cannot be reached
            QueryExecutionError: If an init query or the probe query fails
        """
        self._require(SourceState.CONFIGURED, "probe the schema")
        with self._failing(), log_context(source=self.config.reference_name):
            self._require_resolved(IMPORT_QUERY)
            query = strip_conditions(self.config.get_import_query() or "")
            if not query:
                raise ConfigurationError("Import Query must be specified.")

            logger.debug("schema_probe_started", query=query, connection=self.row_source.describe())
            with open_cursor(
                self.row_source,
                self.dialect.error_classifier,
                PHASE_SCHEMA_PROBE,
                self.config.get_init_queries(),
            ) as cursor:
                set_arraysize(cursor, 1)
                cursor.execute(query)
                description = list(cursor.description or [])
                cursor.fetchmany(1)

            dialect = self.dialect
            self.column_types = [dialect.column_type(entry) for entry in description]
            self.discovered_schema = RecordSchema(
                fields=[dialect.field_schema(column) for column in self.column_types]
            )
            logger.info("schema_probed", fields=len(self.column_types))

        self.state = SourceState.SCHEMA_PROBED
        return self.discovered_schema

    def reconcile_schema(self, collector: FailureCollector | None = None) -> RecordSchema:
        """Settle the output schema.

        A declared schema must match the discovered one; otherwise the
        discovered schema is used as is.

        Raises:
            SchemaMismatchError: With every mismatching field
        """
        self._require(SourceState.SCHEMA_PROBED, "reconcile the schema")
        assert self.discovered_schema is not None
        collector = collector or ValidationCollector()

        with self._failing():
            declared = self.config.declared_schema
            if declared is None:
                self.output_schema = self.discovered_schema
                return self.output_schema

            failures = reconcile(self.discovered_schema, declared)
            if failures:
                for failure in failures:
                    collector.add_failure(failure)
                logger.warning("schema_mismatch", failures=len(failures))
                raise SchemaMismatchError(failures)

            self.output_schema = declared
            return self.output_schema

    def plan_splits(self) -> SplitPlan:
        """Run the bounding query and build one query per split.

        Raises:
            ConfigurationError: If the bounds cannot be partitioned
            QueryExecutionError: If the bounding query fails
        """
        self._require(SourceState.SCHEMA_PROBED, "plan splits")
        if self.output_schema is None:
            self.reconcile_schema()

        with self._failing(), log_context(source=self.config.reference_name):
            self._require_resolved(IMPORT_QUERY, NUM_SPLITS)
            num_splits = self.config.num_splits

            if num_splits == 1:
                plan = plan_splits(None, None, 1)
            else:
                self._require_resolved(SPLIT_BY, BOUNDING_QUERY)
                lower, upper = self._run_bounding_query()
                plan = plan_splits(lower, upper, num_splits, self._split_column_type())

            for warning in plan.warnings:
                logger.warning("split_plan_warning", warning=warning)
            self.queries = self._bind_queries(plan)
            logger.info(
                "splits_planned",
                splits=len(self.queries),
                deferred=plan.deferred,
                bounds=plan.bounds,
            )

        self.split_plan = plan
        self.state = SourceState.SPLIT_PLANNED
        return plan

    def prepare_run(
        self,
        sink: SplitQuerySink | None = None,
        lineage: LineageRecorder | None = None,
        collector: FailureCollector | None = None,
    ) -> RunDescriptor:
        """Validate, probe, reconcile and plan, then hand the run to the sink.

        Returns:
            The emitted run descriptor
        """
        collector = collector or ValidationCollector()
        self.validate(collector)
        if self.state != SourceState.SCHEMA_PROBED:
            # A design-time get_output_schema may already have discovered it
            self.probe_schema()
        self.reconcile_schema(collector)
        self.plan_splits()

        descriptor = self.describe_run()
        if lineage is not None:
            lineage.record_read(
                LINEAGE_OPERATION, LINEAGE_DESCRIPTION, descriptor.output_schema.field_names
            )
        if sink is not None:
            with self._failing():
                sink.submit(descriptor)

        self.state = SourceState.READY
        logger.info(
            "run_prepared",
            source=self.config.reference_name,
            splits=descriptor.num_splits,
            connection=descriptor.connection,
        )
        return descriptor

    def describe_run(self) -> RunDescriptor:
        """Run descriptor of a planned source."""
        if self.output_schema is None or self.split_plan is None:
            raise RuntimeError(f"Cannot describe a run in state '{self.state.value}'")
        return RunDescriptor(
            reference_name=self.config.reference_name,
            dialect=self.dialect.name,
            output_schema=self.output_schema,
            column_types=self.column_types,
            queries=self.queries,
            init_queries=self.config.get_init_queries(),
            fetch_size=self.config.fetch_size or get_settings().default_fetch_size,
            connection=self.row_source.describe(),
            split_by=None if self.config.has_one_split else self.config.split_by,
            bounds=self.split_plan.bounds,
            splits_deferred=self.split_plan.deferred,
            warnings=list(self.split_plan.warnings),
        )

    def get_output_schema(self, collector: FailureCollector) -> Result[RecordSchema | None]:
        """Design-time schema.

        A declared schema wins. When the database cannot be reached yet
        (macros pending) the schema is unknown and None is returned.
        Failures are added to the collector.
        """
        try:
            declared = self.config.declared_schema
        except ConfigurationError as e:
            for failure in e.failures:
                collector.add_failure(failure)
            return Result.fail(str(e))
        if declared is not None:
            return Result.ok(declared)

        if self.discovered_schema is not None:
            return Result.ok(self.discovered_schema)
        if not self.config.can_connect():
            logger.debug("schema_probe_skipped", reason="unresolved macros")
            return Result.ok(None)

        if self.state != SourceState.CONFIGURED:
            # An earlier discovery failed
            error = f"Cannot discover the schema in state '{self.state.value}'"
        else:
            try:
                return Result.ok(self.probe_schema())
            except ConnectorError as e:
                error = str(e)

        collector.add_failure(
            ValidationFailure(
                message=f"Unable to get query schema: {error}",
                config_properties=[IMPORT_QUERY],
            )
        )
        return Result.fail(error)

    # === Helpers ===

    def _run_bounding_query(self) -> tuple[Any, Any]:
        query = self.config.get_bounding_query()
        logger.debug("bounding_query_started", query=query)
        with open_cursor(
            self.row_source,
            self.dialect.error_classifier,
            PHASE_BOUNDING_QUERY,
            self.config.get_init_queries(),
        ) as cursor:
            cursor.execute(query)
            row = cursor.fetchone()
        if row is None or len(row) < 2:
            raise ConfigurationError(
                f"Bounding Query {query} must return one row with the minimum "
                "and maximum of the split column."
            )
        return row[0], row[1]

    def _split_column_type(self) -> SqlType | None:
        split_by = (self.config.split_by or "").strip()
        # "t.id" and '"id"' both name the id column
        name = split_by.rsplit(".", 1)[-1].strip('"`[]').lower()
        for column in self.column_types:
            if column.name.lower() == name:
                return column.sql_type
        return None

    def _bind_queries(self, plan: SplitPlan) -> list[SplitQuery]:
        template = self.config.get_import_query() or ""
        paramstyle = self.dialect.paramstyle
        queries = []
        for index, split in enumerate(plan.ranges):
            if split.unbounded:
                queries.append(SplitQuery(index=index, sql=strip_conditions(template)))
                continue

            predicate, parameters = split.to_predicate(self.config.split_by or "", paramstyle)
            base = template
            if parameters and paramstyle in ("format", "pyformat"):
                # Literal percent signs must survive driver-side formatting
                base = template.replace("%", "%%")
            queries.append(
                SplitQuery(
                    index=index,
                    sql=bind_split(base, predicate, plan.num_splits),
                    parameters=parameters,
                )
            )
        return queries

    def _require(self, state: SourceState, action: str) -> None:
        if self.state != state:
            raise RuntimeError(f"Cannot {action} in state '{self.state.value}'")

    def _require_resolved(self, *props: str) -> None:
        pending = [prop for prop in props if self.config.is_deferred(prop)]
        if pending:
            raise ConfigurationError(
                f"Unresolved macros in {', '.join(pending)}; resolve them before the run"
            )

    @contextmanager
    def _failing(self) -> Iterator[None]:
        try:
            yield
        except Exception:
            self.state = SourceState.FAILED
            raise
