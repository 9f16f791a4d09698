"""Application configuration — env vars, YAML file, defaults."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings


def _repo_root() -> Path:
    """Find the repository root (directory containing pyproject.toml)."""
    current = Path(__file__).resolve().parent.parent
    if (current / "pyproject.toml").exists():
        return current
    return Path.cwd()


REPO_ROOT = _repo_root()

DEFAULT_MODEL = "anthropic/claude-sonnet-4-20250514"


class GoogleConfig(BaseSettings):
    """OAuth client used to refresh per-user Gmail tokens."""

    client_id: str = ""
    client_secret: str = ""
    token_uri: str = "https://oauth2.googleapis.com/token"
    scopes: list[str] = [
        "https://www.googleapis.com/auth/gmail.modify",
        "https://www.googleapis.com/auth/gmail.compose",
    ]

    model_config = {"env_prefix": "ZENO_GOOGLE_"}


class DatabaseConfig(BaseSettings):
    sqlite_path: Path = REPO_ROOT / "data" / "zeno.db"

    model_config = {"env_prefix": "ZENO_DB_"}


class LLMSettings(BaseSettings):
    classify_model: str = DEFAULT_MODEL
    draft_model: str = DEFAULT_MODEL
    max_classify_tokens: int = 200
    max_simple_classify_tokens: int = 10
    max_style_tokens: int = 500

    model_config = {"env_prefix": "ZENO_LLM_"}


class ClassificationConfig(BaseSettings):
    # Tiered prompt with thread/sender context; false forces the single-shot prompt
    enhanced: bool = True

    model_config = {"env_prefix": "ZENO_CLASSIFY_"}


class ProcessingConfig(BaseSettings):
    max_emails: int = 10
    query: str = "is:unread"
    free_draft_limit: int = 10
    thread_context_chars: int = 4000

    model_config = {"env_prefix": "ZENO_PROCESSING_"}


class ServerConfig(BaseSettings):
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "info"
    cron_secret: str = ""

    model_config = {"env_prefix": "ZENO_SERVER_"}


class AppConfig(BaseSettings):
    """Top-level application configuration."""

    google: GoogleConfig = Field(default_factory=GoogleConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    classification: ClassificationConfig = Field(default_factory=ClassificationConfig)
    processing: ProcessingConfig = Field(default_factory=ProcessingConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    # Environment & Sentry
    environment: str = "development"
    sentry_dsn: str = ""

    config_dir: Path = REPO_ROOT / "config"
    data_dir: Path = REPO_ROOT / "data"

    model_config = {"env_prefix": "ZENO_"}

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> AppConfig:
        """Load config from YAML file, with env var overrides."""
        if path is None:
            path = REPO_ROOT / "config" / "app.yml"

        values: dict[str, Any] = {}
        if path.exists():
            with open(path) as f:
                values = yaml.safe_load(f) or {}

        return cls(**values)
