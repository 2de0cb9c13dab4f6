"""dbsource - database batch sources.

Validates a database source, discovers its schema, plans a split scan
and reads splits into records.
"""

__version__ = "0.1.0"

from dbsource.core.models.base import Result
from dbsource.pipeline.source import ConnectorSource, SourceState
from dbsource.sources.config import DatabaseSourceConfig
from dbsource.sources.records import read_split

__all__ = [
    "ConnectorSource",
    "DatabaseSourceConfig",
    "Result",
    "SourceState",
    "__version__",
    "read_split",
]
