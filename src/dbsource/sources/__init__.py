"""Database source building blocks.

- query: split token rewriting
- splits: split planning
- schema: record schemas and reconciliation
- errors: database error classification
- dialects: per-database type mapping and error tables
- row_source / records: connections and split reading
"""

from dbsource.sources.config import DatabaseSourceConfig, FieldState
from dbsource.sources.descriptor import RunDescriptor, SplitQuery
from dbsource.sources.errors import ErrorClassification, ErrorClassifier
from dbsource.sources.query import CONDITIONS_TOKEN, bind_split, strip_conditions
from dbsource.sources.row_source import DuckDBRowSource, RowSource, SQLAlchemyRowSource
from dbsource.sources.schema import FieldSchema, RecordSchema, reconcile
from dbsource.sources.splits import SplitPlan, SplitRange, plan_splits

__all__ = [
    "CONDITIONS_TOKEN",
    "DatabaseSourceConfig",
    "DuckDBRowSource",
    "ErrorClassification",
    "ErrorClassifier",
    "FieldSchema",
    "FieldState",
    "RecordSchema",
    "RowSource",
    "RunDescriptor",
    "SQLAlchemyRowSource",
    "SplitPlan",
    "SplitQuery",
    "SplitRange",
    "bind_split",
    "plan_splits",
    "reconcile",
    "strip_conditions",
]
