"""
Repository layer - abstracts persistence.

Usage:
    from repositories import get_sink, JsonRegistryRepository

    sink = get_sink(settings)     # Returns configured record sink
    sink.append(record, processed_at)

Sinks are swappable via FINDER_SINK (jsonl | sheets).
"""

from .base import (
    RegistryRepository,
    RecordSink,
    SinkConfigError,
    ROW_COLUMNS,
    record_to_row,
)
from .json_backend import JsonRegistryRepository, JsonlRecordSink

_instance: RecordSink = None


def get_sink(settings) -> RecordSink:
    """Get the configured record sink instance."""
    global _instance

    if _instance is None:
        name = settings.sink or "jsonl"
        if name == "jsonl":
            _instance = JsonlRecordSink(settings.sink_path)
        elif name == "sheets":
            from .sheets_backend import SheetsRecordSink
            _instance = SheetsRecordSink(settings.sheet_id, settings.credentials_path,
                                         settings.sheet_worksheet)
        else:
            raise SinkConfigError(f"Unknown sink: {name}")

    return _instance


def configure_sink(instance: RecordSink = None) -> None:
    """Install a ready-made sink, or reset so the next get_sink() rebuilds it."""
    global _instance
    _instance = instance  # None forces re-initialization


__all__ = [
    "RegistryRepository",
    "RecordSink",
    "SinkConfigError",
    "ROW_COLUMNS",
    "record_to_row",
    "JsonRegistryRepository",
    "JsonlRecordSink",
    "get_sink",
    "configure_sink",
]
