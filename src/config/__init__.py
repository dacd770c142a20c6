"""Configuration module - exports Settings, load_config, WorkerConfig, and a module-level singleton."""

from src.config.loader import WorkerConfig, load_config
from src.config.settings import Settings

settings = Settings()

__all__ = ["Settings", "WorkerConfig", "load_config", "settings"]
