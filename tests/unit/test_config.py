"""
Tests for configuration loading.
"""

import pytest

from reqingest.config import (
    CONFIG_ENV_VAR,
    DEFAULT_MODEL,
    MEMORY_ENV_VAR,
    IngestConfig,
    load_config,
)
from reqingest.errors import ConfigError


class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults(self, tmp_path, monkeypatch):
        """Test defaults without a config file."""
        monkeypatch.chdir(tmp_path)
        config = load_config()

        assert config.chunking.chunk_size == 8000
        assert config.chunking.overlap == 800
        assert config.chunking.search_window == 1000
        assert config.chunking.max_chunks is None
        assert config.extraction.model == DEFAULT_MODEL
        assert config.extraction.min_total_items == 5
        assert config.worker.timeout_seconds == 600
        assert config.worker.max_concurrent_jobs == 2
        assert config.source_path is None

    def test_yaml_file(self, tmp_path):
        """Test values from YAML override defaults."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "chunking:\n  chunk_size: 4000\n  overlap: 400\n"
            "extraction:\n  model: gpt-4o\n"
            "worker:\n  timeout_seconds: 30\n",
            encoding="utf-8",
        )

        config = load_config(path)

        assert config.chunking.chunk_size == 4000
        assert config.chunking.overlap == 400
        assert config.chunking.search_window == 1000
        assert config.extraction.model == "gpt-4o"
        assert config.worker.timeout_seconds == 30
        assert config.source_path == str(path.resolve())

    def test_path_from_env(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("extraction:\n  max_workers: 3\n", encoding="utf-8")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))

        assert load_config().extraction.max_workers == 3

    def test_env_overrides(self, tmp_path, monkeypatch):
        """Test model and log level overrides from the environment."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("REQINGEST_MODEL", "claude-sonnet-4-20250514")
        monkeypatch.setenv("REQINGEST_LOG_LEVEL", "debug")

        config = load_config()

        assert config.extraction.model == "claude-sonnet-4-20250514"
        assert config.logging.level == "DEBUG"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("chunking: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)

    def test_invalid_values(self, tmp_path):
        """Test schema violations are config errors."""
        path = tmp_path / "config.yaml"
        path.write_text("chunking:\n  chunk_size: -1\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(path).chunking.chunk_size == 8000


class TestWorkerEnv:
    """Tests for IngestConfig.worker_env."""

    def test_forwards_path_and_memory(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("worker:\n  memory_limit_mb: 1024\n", encoding="utf-8")

        env = load_config(path).worker_env()

        assert env[CONFIG_ENV_VAR] == str(path.resolve())
        assert env[MEMORY_ENV_VAR] == "1024"

    def test_no_path(self):
        env = IngestConfig().worker_env()
        assert CONFIG_ENV_VAR not in env
        assert env[MEMORY_ENV_VAR] == "3072"
