"""
Seed taxonomy loaded from taxonomy.yaml.
"""

from functools import lru_cache
from pathlib import Path

import yaml

TAXONOMY_FILE = Path(__file__).parent / "taxonomy.yaml"


@lru_cache(maxsize=1)
def load_taxonomy() -> dict:
    with open(TAXONOMY_FILE) as f:
        return yaml.safe_load(f) or {}


def seed_terms() -> dict[str, list[str]]:
    """Seed genre names keyed by category (fiction, nonfiction)."""
    data = load_taxonomy()
    return {
        "fiction": list(data.get("fiction", [])),
        "nonfiction": list(data.get("nonfiction", [])),
    }


def seed_aliases() -> dict[str, list[str]]:
    return {name: list(aliases) for name, aliases in (load_taxonomy().get("aliases") or {}).items()}


def audience_categories() -> list[str]:
    return list(load_taxonomy().get("audience", []))
