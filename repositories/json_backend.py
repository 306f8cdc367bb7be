"""
JSON file backend - stores data as JSON/JSONL files.

Layout:
    data/
        genre_registry.json   - Genre registry (atomic replace)
        agents.jsonl          - Saved agent records (append-only)
"""

import json
import threading
from pathlib import Path
from typing import Optional
from datetime import datetime

from pydantic import ValidationError

from models import Registry, ValidatedRecord
from .base import RegistryRepository, RecordSink, SinkConfigError


class WriteQueue:
    """Thread-safe write serialization."""

    def __init__(self):
        self._lock = threading.Lock()

    def write_json(self, path: Path, data: dict) -> None:
        """Atomic JSON write."""
        with self._lock:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp = path.with_suffix(".json.tmp")
            with open(temp, "w") as f:
                json.dump(data, f, indent=2, default=str)
            temp.replace(path)

    def append_jsonl(self, path: Path, data: dict) -> None:
        """Append to JSONL file."""
        with self._lock:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "a") as f:
                f.write(json.dumps(data, default=str) + "\n")


_write_queue = WriteQueue()


class JsonRegistryRepository(RegistryRepository):
    """Registry stored as a single JSON document."""

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def load(self) -> Optional[Registry]:
        if not self._path.exists():
            return None

        try:
            with open(self._path) as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            print(f"[WARN] Corrupt registry {self._path}: {e}")
            return None

        try:
            return Registry.model_validate(data)
        except ValidationError as e:
            print(f"[WARN] Invalid registry {self._path}: {e.error_count()} errors")
            return None

    def save(self, registry: Registry) -> None:
        _write_queue.write_json(self._path, registry.model_dump(mode="json"))


class JsonlRecordSink(RecordSink):
    """Append-only local sink, one JSON object per line."""

    def __init__(self, path: Optional[Path]):
        if not path:
            raise SinkConfigError("JSONL sink path is not configured")
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def append(self, record: ValidatedRecord, processed_at: datetime) -> None:
        data = record.model_dump(mode="json")
        data["processed_at"] = processed_at.isoformat()
        _write_queue.append_jsonl(self._path, data)

    def read_all(self) -> list[dict]:
        if not self._path.exists():
            return []
        rows = []
        with open(self._path) as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    rows.append(json.loads(line))
                except json.JSONDecodeError:
                    print(f"[WARN] Skipping corrupt line in {self._path}")
        return rows
