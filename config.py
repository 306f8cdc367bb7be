"""
Configuration and shared client factory for the Agent Finder.
"""

import os
import yaml
from pathlib import Path
from typing import Optional, Tuple
from dataclasses import dataclass, field, fields
from dotenv import load_dotenv

# Pre-import clients to avoid deadlocks during hot reload
from groq import Groq
from openai import OpenAI

load_dotenv()

# Client cache to avoid recreating clients (prevents deadlocks during hot reload)
_client_cache: dict = {}

DATA_DIR = Path(os.environ.get("FINDER_DATA_DIR", "data"))
SETTINGS_FILE = Path(os.environ.get("FINDER_CONFIG", "finder.yaml"))


@dataclass
class Settings:
    """
    Tunables for one pipeline instance.

    Defaults come from the environment; an optional finder.yaml overrides them.
    """
    oracle_model: str = "ollama/llama3.1:8b"
    embedding_model: str = "ollama/nomic-embed-text"

    match_threshold: float = 0.82
    quality_floor: int = 20

    max_links: int = 25
    concurrency: int = 5
    min_page_chars: int = 200
    triage_preview_chars: int = 300
    max_prompt_chars: int = 50000

    self_consistency: bool = False
    consistency_samples: int = 2
    profile_embedding: bool = True

    # Seconds
    extract_timeout: float = 120.0
    classify_timeout: float = 30.0
    triage_timeout: float = 30.0
    probe_timeout: float = 5.0
    fetch_timeout: float = 10.0
    sitemap_timeout: float = 5.0
    embed_timeout: float = 10.0

    registry_path: Path = field(default_factory=lambda: DATA_DIR / "genre_registry.json")
    sink: str = "jsonl"
    sink_path: Path = field(default_factory=lambda: DATA_DIR / "agents.jsonl")
    sheet_id: Optional[str] = None
    credentials_path: Optional[str] = None
    sheet_worksheet: str = "Agents"


_ENV_KEYS = {
    "oracle_model": "FINDER_ORACLE_MODEL",
    "embedding_model": "FINDER_EMBEDDING_MODEL",
    "match_threshold": "GENRE_MATCH_THRESHOLD",
    "quality_floor": "QUALITY_FLOOR",
    "max_links": "MAX_AGENT_LINKS",
    "concurrency": "SCRAPE_CONCURRENCY",
    "min_page_chars": "MIN_PAGE_CHARS",
    "self_consistency": "FINDER_SELF_CONSISTENCY",
    "consistency_samples": "CONSISTENCY_SAMPLES",
    "profile_embedding": "FINDER_PROFILE_EMBEDDING",
    "extract_timeout": "EXTRACT_TIMEOUT",
    "classify_timeout": "CLASSIFY_TIMEOUT",
    "triage_timeout": "TRIAGE_TIMEOUT",
    "probe_timeout": "PROBE_TIMEOUT",
    "fetch_timeout": "FETCH_TIMEOUT",
    "registry_path": "GENRE_REGISTRY_PATH",
    "sink": "FINDER_SINK",
    "sink_path": "FINDER_SINK_PATH",
    "sheet_id": "GOOGLE_SHEET_ID",
    "credentials_path": "GOOGLE_CREDENTIALS_PATH",
    "sheet_worksheet": "GOOGLE_WORKSHEET",
}


def _coerce(name: str, value):
    """Cast a raw env/yaml value to the type of the Settings field."""
    default = getattr(Settings(), name)
    if value is None:
        return None
    if isinstance(default, bool):
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        return int(value)
    if isinstance(default, float):
        return float(value)
    if isinstance(default, Path):
        return Path(value)
    return str(value)


def load_settings(path: Optional[Path] = None, **overrides) -> Settings:
    """Build Settings from environment, then finder.yaml, then keyword overrides."""
    values = {}
    for name, env_key in _ENV_KEYS.items():
        raw = os.environ.get(env_key)
        if raw:
            values[name] = _coerce(name, raw)

    path = path or SETTINGS_FILE
    if path.exists():
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        known = {f.name for f in fields(Settings)}
        for key, value in data.items():
            if key in known:
                values[key] = _coerce(key, value)
            else:
                print(f"[WARN] Unknown setting in {path}: {key}")

    values.update(overrides)
    return Settings(**values)


def _get_cached_client(provider: str):
    """Get or create a cached client for a provider."""
    if provider in _client_cache:
        return _client_cache[provider]

    if provider == "groq":
        client = Groq()
    elif provider == "openai":
        client = OpenAI()
    elif provider == "together":
        client = OpenAI(base_url="https://api.together.xyz/v1", api_key=os.environ.get("TOGETHER_API_KEY"))
    elif provider == "ollama":
        host = os.environ.get("OLLAMA_HOST", "http://localhost:11434")
        client = OpenAI(base_url=f"{host}/v1", api_key="ollama")
    else:
        raise ValueError(f"Unknown provider: {provider}")

    _client_cache[provider] = client
    return client


def get_client(model_key: str) -> Tuple[object, dict]:
    """
    Get API client for a "provider/model-name" key.

    A bare model name is treated as a local ollama model.
    Returns (client, model_config) tuple.
    """
    if "/" in model_key:
        provider, model_name = model_key.split("/", 1)
        provider = provider.lower()
    else:
        provider, model_name = "ollama", model_key

    model_cfg = {"provider": provider, "model": model_name}
    return _get_cached_client(provider), model_cfg
