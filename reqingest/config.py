"""
Runtime configuration.

Settings come from an optional YAML file, then a handful of environment
overrides. Nothing here is mutated at runtime: the dispatcher hands the
worker its config path and memory limit explicitly through the spawn
environment.
"""

import os
from pathlib import Path
from typing import Optional, Union

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from .errors import ConfigError

CONFIG_ENV_VAR = "REQINGEST_CONFIG"
MEMORY_ENV_VAR = "REQINGEST_WORKER_MEMORY_MB"

# Default model - any LiteLLM supported model works
# Examples:
#   - "gemini/gemini-2.0-flash" (Google Gemini)
#   - "claude-sonnet-4-20250514" (Anthropic Claude)
#   - "gpt-4o" (OpenAI GPT-4)
DEFAULT_MODEL = "gemini/gemini-2.0-flash"


class ChunkingConfig(BaseModel):
    """Chunk splitting and sampling."""

    chunk_size: int = Field(8000, gt=0)
    overlap: int = Field(800, ge=0)
    search_window: int = Field(1000, gt=0)
    # None: pick the budget from the document size
    max_chunks: Optional[int] = Field(None, ge=1)
    max_read_bytes: int = Field(20 * 1024 * 1024, gt=0)


class ExtractionConfig(BaseModel):
    """LLM extraction (LiteLLM format)."""

    model: str = DEFAULT_MODEL
    max_tokens: int = 4096
    temperature: float = 0.2
    min_total_items: int = Field(5, ge=1)
    max_workers: int = Field(8, ge=1)
    min_text_length: int = Field(20, ge=1)


class WorkerConfig(BaseModel):
    """Worker process limits."""

    timeout_seconds: Optional[float] = Field(600.0, gt=0)
    memory_limit_mb: Optional[int] = Field(3072, gt=0)
    poll_interval: float = Field(0.2, gt=0)
    terminate_grace: float = Field(5.0, gt=0)
    max_concurrent_jobs: int = Field(2, ge=1)
    # Finished jobs are dropped from the queue after this long (None: keep)
    job_retention_seconds: Optional[float] = Field(3600.0, gt=0)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file: Optional[str] = None


class IngestConfig(BaseModel):
    """Top-level configuration."""

    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    worker: WorkerConfig = Field(default_factory=WorkerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Where this config was loaded from, forwarded to worker processes
    source_path: Optional[str] = None

    def worker_env(self) -> dict[str, str]:
        """Environment entries a spawned worker needs to rebuild this config."""
        env: dict[str, str] = {}
        if self.source_path:
            env[CONFIG_ENV_VAR] = self.source_path
        if self.worker.memory_limit_mb:
            env[MEMORY_ENV_VAR] = str(self.worker.memory_limit_mb)
        return env


def load_config(path: Optional[Union[str, Path]] = None) -> IngestConfig:
    """
    Load configuration.

    Args:
        path: YAML file; defaults to $REQINGEST_CONFIG when set

    Returns:
        Validated IngestConfig
    """
    load_dotenv()

    path = path or os.environ.get(CONFIG_ENV_VAR)
    data: dict = {}
    if path:
        config_path = Path(path)
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")
        try:
            with open(config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config root must be a mapping: {config_path}")
        data["source_path"] = str(config_path.resolve())

    try:
        config = IngestConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    if model := os.environ.get("REQINGEST_MODEL"):
        config.extraction.model = model
    if level := os.environ.get("REQINGEST_LOG_LEVEL"):
        config.logging.level = level.upper()

    return config
