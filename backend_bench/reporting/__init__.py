r"""
Result collection, persistence and reporting.

Aggregates measurements into ResultSets, encodes them losslessly,
writes handoff artifacts atomically and exports summaries.

    from backend_bench.reporting import ResultCollector, write_result_set

    collector = ResultCollector()
    collector.record(measurement)
    write_result_set(path, collector.finalize())
"""

from backend_bench.reporting.collector import ResultCollector, SessionInfo
from backend_bench.reporting.formats import (
    CsvExporter,
    JsonExporter,
    deserialize,
    read_result_set,
    serialize,
    write_atomic,
    write_result_set,
)
from backend_bench.reporting.upload import ResultUploader, TokenCache

__all__ = [
    "CsvExporter",
    "JsonExporter",
    "ResultCollector",
    "ResultUploader",
    "SessionInfo",
    "TokenCache",
    "deserialize",
    "read_result_set",
    "serialize",
    "write_atomic",
    "write_result_set",
]
