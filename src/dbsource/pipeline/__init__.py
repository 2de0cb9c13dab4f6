"""Source run orchestration and host collaborators."""

from dbsource.pipeline.host import (
    CollectingSink,
    FailureCollector,
    InMemoryLineage,
    LineageRecorder,
    MacroEvaluator,
    SplitQuerySink,
    ValidationCollector,
)
from dbsource.pipeline.source import ConnectorSource, SourceState

__all__ = [
    "CollectingSink",
    "ConnectorSource",
    "FailureCollector",
    "InMemoryLineage",
    "LineageRecorder",
    "MacroEvaluator",
    "SourceState",
    "SplitQuerySink",
    "ValidationCollector",
]
