"""Reading one split into records.

Runs on a worker: opens its own connection, executes one split query and
maps DB-API row tuples to dict records shaped by the output schema.
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Sequence
from datetime import date, datetime, time, timedelta
from decimal import Decimal, localcontext
from typing import Any

from dbsource.core.exceptions import ConfigurationError
from dbsource.core.logging import get_logger
from dbsource.core.models.base import FieldType, LogicalType
from dbsource.sources.descriptor import RunDescriptor
from dbsource.sources.dialects import NOT_HANDLED, ColumnType, Dialect, get_dialect
from dbsource.sources.errors import PHASE_SPLIT_EXECUTION
from dbsource.sources.row_source import RowSource, open_cursor, set_arraysize
from dbsource.sources.schema import FieldSchema, RecordSchema

logger = get_logger(__name__)


class RecordMapper:
    """Maps result rows to records of the output schema.

    Fields are looked up by column name, so a declared schema may select
    and reorder the query's columns.
    """

    def __init__(self, schema: RecordSchema, column_types: Sequence[ColumnType], dialect: Dialect):
        self.schema = schema
        self.dialect = dialect
        positions = {c.name: i for i, c in enumerate(column_types)}
        folded = {c.name.lower(): i for i, c in enumerate(column_types)}

        self._plan: list[tuple[FieldSchema, int, ColumnType]] = []
        for f in schema.fields:
            index = positions.get(f.name, folded.get(f.name.lower()))
            if index is None:
                raise ConfigurationError(
                    f"Schema field '{f.name}' is not present in actual record"
                )
            self._plan.append((f, index, column_types[index]))

    def to_record(self, row: Sequence[Any]) -> dict[str, Any]:
        return {f.name: self._convert(f, column, row[i]) for f, i, column in self._plan}

    def _convert(self, f: FieldSchema, column: ColumnType, value: Any) -> Any:
        if self.dialect.field_handler is not None:
            handled = self.dialect.field_handler(f, column, value)
            if handled is not NOT_HANDLED:
                return handled
        if value is None:
            return None
        try:
            return convert_value(f, value)
        except (ArithmeticError, TypeError) as e:
            # Re-raised as ValueError so the split reader classifies it as USER
            raise ValueError(
                f"Cannot convert value {value!r} of column '{column.name}' "
                f"to field '{f.name}' ({f.display_name}): {e}"
            ) from e


def convert_value(f: FieldSchema, value: Any) -> Any:
    """Convert a driver value to the Python type of a record field."""
    match f.logical_type:
        case LogicalType.DECIMAL:
            number = value if isinstance(value, Decimal) else Decimal(str(value))
            if f.scale is None:
                return number
            with localcontext() as ctx:
                # The default context holds 28 digits; NUMBER(38) or DECIMAL(65) need more
                ctx.prec = max(ctx.prec, f.precision or 0, number.adjusted() + 1 + f.scale)
                return number.quantize(Decimal(1).scaleb(-f.scale))
        case LogicalType.DATE:
            return value.date() if isinstance(value, datetime) else value
        case LogicalType.TIME_MICROS:
            if isinstance(value, timedelta):
                # PyMySQL returns TIME as a timedelta
                return (datetime.min + value).time()
            return value
        case LogicalType.TIMESTAMP_MICROS:
            if isinstance(value, date) and not isinstance(value, datetime):
                return datetime.combine(value, time())
            return value

    match f.type:
        case FieldType.BOOLEAN:
            if isinstance(value, bytes):
                # MySQL BIT(1)
                return int.from_bytes(value, "big") != 0
            return bool(value)
        case FieldType.INT | FieldType.LONG:
            return int(value)
        case FieldType.FLOAT | FieldType.DOUBLE:
            return float(value)
        case FieldType.BYTES:
            if isinstance(value, str):
                return value.encode("utf-8")
            return bytes(value)
        case FieldType.STRING:
            if isinstance(value, str):
                return value
            if isinstance(value, bytes | bytearray | memoryview):
                return bytes(value).decode("utf-8")
            if isinstance(value, dict | list):
                return json.dumps(value)
            return str(value)
    return value


def read_split(
    row_source: RowSource,
    descriptor: RunDescriptor,
    index: int,
) -> Iterator[dict[str, Any]]:
    """Read one split of a prepared run.

    Args:
        row_source: Connections to the source database
        descriptor: Prepared run
        index: Split index

    Yields:
        Records in result order

    Raises:
        QueryExecutionError: If the split query fails (phase 'split execution')
        SourceConnectionError: If the database cannot be reached
    """
    dialect = get_dialect(descriptor.dialect)
    split = descriptor.get_query(index)
    mapper = RecordMapper(descriptor.output_schema, descriptor.column_types, dialect)

    # Bound logger: context variables do not survive across generator yields
    log = logger.bind(source=descriptor.reference_name, split=index)
    log.debug("split_read_started", sql=split.sql, parameters=split.parameters)

    count = 0
    with open_cursor(
        row_source,
        dialect.error_classifier,
        PHASE_SPLIT_EXECUTION,
        descriptor.init_queries,
    ) as cursor:
        set_arraysize(cursor, descriptor.fetch_size)
        if split.parameters:
            cursor.execute(split.sql, split.parameters)
        else:
            cursor.execute(split.sql)
        while rows := cursor.fetchmany(descriptor.fetch_size):
            for row in rows:
                count += 1
                yield mapper.to_record(row)
    log.info("split_read_completed", records=count)
