"""
Fixtures for tests that touch the filesystem.

Registry files and record sinks write under a throwaway directory;
the oracle, embedder and fetcher stay faked.
"""

import shutil
import tempfile
from pathlib import Path

import pytest


@pytest.fixture
def temp_dir():
    d = tempfile.mkdtemp(prefix="finder-")
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def registry_path(temp_dir):
    """Registry file location; parent dir is not created."""
    return temp_dir / "data" / "genre_registry.json"


@pytest.fixture
def records_path(temp_dir):
    return temp_dir / "out" / "agents.jsonl"
