import os
from dataclasses import dataclass
from typing import Any

import yaml
from rich.console import Console

console = Console()

DEFAULT_CONFIG: dict[str, Any] = {
    "parsing": {
        "context_window": 100,
        "year_pivot": 50,
        "min_year": 1957,
        "max_year": 2100,
        "context_snippet_max": 200,
    },
    "search": {"default_limit": 20, "max_limit": 100},
    "ingest": {"max_workers": 4, "accept_fallback_amendments": False},
    "seed_instruments": [],
}


@dataclass(frozen=True)
class XrefConfig:
    """Thresholds and limits for parsing, search and ingestion."""

    # Characters of surrounding text scanned on each side of a citation
    context_window: int = 100

    # Two-digit years below the pivot map to the 2000s, the rest to the 1900s
    year_pivot: int = 50

    # Plausible adoption years for EU instruments
    min_year: int = 1957
    max_year: int = 2100

    # Stored context snippet length
    context_snippet_max: int = 200

    search_default_limit: int = 20
    search_max_limit: int = 100

    max_workers: int = 4
    accept_fallback_amendments: bool = False

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "XrefConfig":
        parsing = config.get("parsing", {}) or {}
        search = config.get("search", {}) or {}
        ingest = config.get("ingest", {}) or {}
        defaults = cls()
        return cls(
            context_window=parsing.get("context_window", defaults.context_window),
            year_pivot=parsing.get("year_pivot", defaults.year_pivot),
            min_year=parsing.get("min_year", defaults.min_year),
            max_year=parsing.get("max_year", defaults.max_year),
            context_snippet_max=parsing.get("context_snippet_max", defaults.context_snippet_max),
            search_default_limit=search.get("default_limit", defaults.search_default_limit),
            search_max_limit=search.get("max_limit", defaults.search_max_limit),
            max_workers=ingest.get("max_workers", defaults.max_workers),
            accept_fallback_amendments=ingest.get(
                "accept_fallback_amendments", defaults.accept_fallback_amendments
            ),
        )


DEFAULT_XREF_CONFIG = XrefConfig()


def load_config(config_path: str = "config.yaml") -> dict[str, Any]:
    """
    From config.yaml

    Args:
        config_path: Path to config file (default: config.yaml)

    Returns:
        Configuration dictionary
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or DEFAULT_CONFIG
    except FileNotFoundError:
        console.print(f"[yellow]Warning: {config_path} not found. Using default config.[/yellow]")
        return DEFAULT_CONFIG


def get_db_path(default: str = "xref.db") -> str:
    return os.getenv("XREF_DB_PATH", default)


def get_config_path(default: str = "config.yaml") -> str:
    return os.getenv("XREF_CONFIG", default)
