"""Engine settings loaded from the environment."""

from typing import Optional

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings for the context engine.

    Values come from ``CONTEXT_ENGINE_*`` environment variables or a ``.env``
    file. Tier budgets are not settings; they live in
    :mod:`context_engine.config.tiers` and the subscription store.
    """

    model_config = SettingsConfigDict(
        env_prefix="CONTEXT_ENGINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_url: str = "sqlite:///data/context_engine.db"

    # Embeddings
    embedding_provider: str = "openai"
    openai_api_key: Optional[SecretStr] = None
    openai_base_url: Optional[str] = None
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: Optional[int] = Field(default=None, gt=0)

    # Deadlines (seconds)
    embedding_timeout_seconds: float = Field(default=5.0, gt=0)
    search_timeout_seconds: float = Field(default=5.0, gt=0)
    pipeline_timeout_seconds: float = Field(default=15.0, gt=0)

    # Retrieval
    retrieval_candidate_limit: int = Field(default=50, gt=0)
    short_term_memory_days: int = Field(default=30, gt=0)

    # Compression
    compression_trigger_ratio: float = Field(default=1.5, ge=1.0)
    compression_target_ratio: float = Field(default=0.5, gt=0.0, lt=1.0)

    # Per-user overrides may not exceed the plan budget unless disabled
    clamp_user_context_override: bool = True

    log_level: str = "INFO"
    log_format: str = "json"

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        if value not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return value

    @property
    def openai_api_key_str(self) -> Optional[str]:
        """Plain-text OpenAI key, or None when unset."""
        if self.openai_api_key is None:
            return None
        return self.openai_api_key.get_secret_value() or None
