"""Unit tests for Settings and the YAML config loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.config.loader import WorkerConfig, _deep_merge, load_config
from src.config.settings import Settings


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestSettings:
    def test_defaults(self):
        app_settings = _settings()
        assert app_settings.image_provider == "wikipedia"
        assert app_settings.unsplash_rate_limit == 50
        assert app_settings.scheduler_enabled is True

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("IMAGE_PROVIDER", "unsplash")
        monkeypatch.setenv("UNSPLASH_ACCESS_KEY", "abc")
        app_settings = Settings(_env_file=None)
        assert app_settings.get_image_provider_name() == "unsplash"

    @pytest.mark.parametrize(
        ("provider", "key", "expected"),
        [
            ("wikipedia", "", "wikipedia"),
            ("UNSPLASH", "abc", "unsplash"),
            ("unsplash", "", "wikipedia"),
            ("bogus", "abc", "wikipedia"),
        ],
    )
    def test_image_provider_resolution(self, provider, key, expected):
        app_settings = _settings(image_provider=provider, unsplash_access_key=key)
        assert app_settings.get_image_provider_name() == expected


class TestLoadConfig:
    def test_reads_worker_section(self, tmp_path: Path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("worker:\n  batch_size: 25\n  max_retries: 5\n  unknown_knob: 1\n")

        config = load_config(str(config_file), settings=_settings())
        worker = WorkerConfig.from_config(config)

        assert worker.batch_size == 25
        assert worker.max_retries == 5
        assert worker.backoff_base_minutes == 5
        assert worker.run_timeout_seconds == 120

    def test_missing_file_gives_defaults(self, tmp_path: Path):
        config = load_config(str(tmp_path / "absent.yaml"), settings=_settings())
        assert WorkerConfig.from_config(config) == WorkerConfig()
        assert config["images"]["provider"] == "wikipedia"

    def test_env_values_override_yaml(self, tmp_path: Path):
        config_file = tmp_path / "config.yaml"
        config_file.write_text("app:\n  port: 1234\n  name: birds\n")

        config = load_config(str(config_file), settings=_settings(app_port=9000))

        assert config["app"]["port"] == 9000
        assert config["app"]["name"] == "birds"

    def test_repo_config_matches_defaults(self):
        config_path = Path(__file__).resolve().parents[2] / "config" / "config.yaml"
        config = load_config(str(config_path), settings=_settings())
        assert WorkerConfig.from_config(config) == WorkerConfig()


def test_deep_merge_is_recursive():
    base = {"worker": {"batch_size": 10, "max_retries": 3}}
    _deep_merge(base, {"worker": {"max_retries": 4}, "extra": 1})
    assert base == {"worker": {"batch_size": 10, "max_retries": 4}, "extra": 1}
