"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ───────────────────────────────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. config/config.yaml  - Static defaults checked into the repo
#   2. .env file           - Local developer overrides (not committed)
#   3. Environment vars    - Set at deploy time
#
# The load_config() function reads the YAML file first, then deep-merges
# environment-based values on top.  Worker tuning knobs have no env
# counterpart, so their YAML values always survive the merge.
#
# The _deep_merge helper does recursive dict merging:
#   base = {"worker": {"batch_size": 10}}
#   overrides = {"worker": {"image_provider": "unsplash"}}
#   result = {"worker": {"batch_size": 10, "image_provider": "unsplash"}}
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from src.config.settings import Settings


@dataclass(frozen=True)
class WorkerConfig:
    """Tunables for the enrichment worker and its scheduler."""

    batch_size: int = 10
    request_delay_seconds: float = 1.0
    max_retries: int = 3
    backoff_base_minutes: int = 5
    stale_processing_minutes: int = 5
    interval_minutes: int = 5
    run_timeout_seconds: int = 120

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> WorkerConfig:
        """Build from the ``worker`` section of a loaded config dict.

        Unknown keys are ignored; missing keys keep their defaults.
        """
        section = config.get("worker") or {}
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in section.items() if k in known})


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Environment variables (via Settings) override YAML values where keys overlap.

    Args:
        path: Path to the YAML configuration file.
        settings: Settings to merge; a fresh ``Settings()`` when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "storage": {
            "photo_cache_db_path": settings.photo_cache_db_path,
            "sightings_db_path": settings.sightings_db_path,
        },
        "images": {
            "provider": settings.get_image_provider_name(),
            "unsplash_rate_limit": settings.unsplash_rate_limit,
            "unsplash_rate_window_hours": settings.unsplash_rate_window_hours,
        },
        "scheduler": {
            "enabled": settings.scheduler_enabled,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
