"""Run descriptor handed from the planning side to split readers.

Everything a worker needs to read its split travels in the descriptor,
serialized with pydantic. Credentials do not: workers get them from
their own row source.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from dbsource.sources.dialects import ColumnType
from dbsource.sources.schema import RecordSchema


class SplitQuery(BaseModel):
    """The query of one split, with its bound parameters."""

    index: int
    sql: str
    parameters: list[Any] = Field(default_factory=list)


class RunDescriptor(BaseModel):
    """Prepared read of one source run.

    Attributes:
        reference_name: Source reference name (lineage dataset)
        dialect: Dialect name
        output_schema: Effective output schema
        column_types: Database column types of the probe query, in column order
        queries: One query per split, in split order
        init_queries: Statements run on every connection before reading
        fetch_size: Rows fetched per round trip
        connection: Connection target with credentials removed
        split_by: Split column (None for a single unbounded split)
        bounds: (min, max) returned by the bounding query
        splits_deferred: True when the execution engine picks the split count
    """

    reference_name: str
    dialect: str
    output_schema: RecordSchema
    column_types: list[ColumnType] = Field(default_factory=list)
    queries: list[SplitQuery] = Field(default_factory=list)
    init_queries: list[str] = Field(default_factory=list)
    fetch_size: int
    connection: str
    split_by: str | None = None
    bounds: tuple[Any, Any] | None = None
    splits_deferred: bool = False
    warnings: list[str] = Field(default_factory=list)

    @property
    def num_splits(self) -> int:
        return len(self.queries)

    def get_query(self, index: int) -> SplitQuery:
        for query in self.queries:
            if query.index == index:
                return query
        raise IndexError(f"No split {index}; run has {len(self.queries)} splits")
