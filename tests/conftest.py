"""
Root test configuration.

Test organization:
- unit/        Fast, isolated, no I/O, fake oracle/embedder
- integration/ Component boundaries, real I/O to temp locations

Run specific levels:
    pytest tests/unit -v           # Fast feedback loop
    pytest tests/integration -v    # Before commit
    pytest tests -v                # Everything

Nothing here talks to a network: the oracle, embedder and fetcher are fakes.
"""

import sys
from pathlib import Path

# Project root for the app packages, tests/ for the shared fakes
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

import pytest

from config import Settings
from models import GenreCategory, Registry, RegistryEntry
from fakes import FakeEmbedder, FakeFetcher, FakeOracle, agent_json, page_text


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Fast isolated tests")
    config.addinivalue_line("markers", "integration: Component boundary tests")
    config.addinivalue_line("markers", "slow: Tests that take > 1s")


@pytest.fixture
def settings(tmp_path):
    return Settings(
        registry_path=tmp_path / "registry.json",
        sink_path=tmp_path / "agents.jsonl",
        profile_embedding=False,
    )


@pytest.fixture
def small_registry():
    """Partitioned registry with 2-d fingerprints."""
    return Registry(
        embedding_model_id="fake/embed",
        entries=[
            RegistryEntry(name="Thriller", fingerprint=[1.0, 0.0], category=GenreCategory.FICTION),
            RegistryEntry(name="Romance", fingerprint=[0.0, 1.0], category=GenreCategory.FICTION),
            RegistryEntry(name="Science Fiction", aliases=["sci-fi"], fingerprint=[0.7, 0.7],
                          category=GenreCategory.FICTION),
            RegistryEntry(name="Poetry", fingerprint=None, category=GenreCategory.FICTION),
            RegistryEntry(name="Memoir", fingerprint=[-1.0, 0.0], category=GenreCategory.NONFICTION),
        ],
    )


@pytest.fixture
def make_oracle():
    return FakeOracle


@pytest.fixture
def make_embedder():
    return FakeEmbedder


@pytest.fixture
def make_fetcher():
    return FakeFetcher


@pytest.fixture
def make_agent_json():
    return agent_json


@pytest.fixture
def make_page_text():
    return page_text
