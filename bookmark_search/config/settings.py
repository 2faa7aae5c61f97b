"""
Application settings management.

Loads configuration from environment variables and resolves which embedding
backend the service uses.
"""

import os
from pathlib import Path
from typing import Optional
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from bookmark_search.errors import EmbeddingConfigurationError
from .models import EmbeddingConfig, EmbeddingProvider, build_embedding_config


DEFAULT_MODELS: dict[str, str] = {
    "openai": "text-embedding-3-small",
    "ollama": "nomic-embed-text",
    "local": "sentence-transformers/all-MiniLM-L6-v2",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Karakeep Configuration
    karakeep_url: str = Field(..., description="Base URL of the Karakeep instance")
    karakeep_api_key: str = Field(..., min_length=1, description="Karakeep API key")

    # Embedding Configuration
    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API key")
    ollama_url: Optional[str] = Field(default=None, description="Ollama server URL")
    embedding_provider: Optional[EmbeddingProvider] = Field(
        default=None,
        description="Embedding backend (openai, ollama, local); inferred if unset"
    )
    embedding_model: Optional[str] = Field(
        default=None,
        description="Embedding model name (defaults depend on the provider)"
    )
    embedding_dimensions: Optional[int] = Field(
        default=None,
        gt=0,
        description="Override the vector size of the embedding model"
    )

    # Qdrant Configuration
    qdrant_url: str = Field(default="http://localhost:6333", description="Qdrant URL or ':memory:'")
    qdrant_api_key: Optional[str] = Field(default=None, description="Qdrant API key")
    qdrant_collection: str = Field(default="karakeep_bookmarks", description="Qdrant collection name")

    # Sync Configuration
    sync_interval_minutes: float = Field(default=5, description="Minutes between incremental syncs")
    enable_background_sync: bool = Field(default=True, description="Run the periodic sync task")
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for each call to Karakeep, Qdrant or the embedding backend"
    )

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=3000, description="API server port")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[Path] = Field(default=None, description="Path to log file")

    # Application version
    version: str = Field(default="0.1.0", description="Service version")

    @field_validator("karakeep_url", "ollama_url")
    @classmethod
    def validate_url(cls, v, info):
        """Require http(s) URLs and drop trailing slashes."""
        if v is None or v == "":
            if info.field_name == "karakeep_url":
                raise ValueError("KARAKEEP_URL must not be empty")
            return None
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Invalid URL '{v}': must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("log_file", mode="before")
    @classmethod
    def expand_path(cls, v):
        """Expand user home directory in paths."""
        if v is None or str(v).strip() == "":
            return None
        path_str = str(v)
        if path_str.startswith("~"):
            path_str = os.path.expanduser(path_str)
        return Path(path_str)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper == "WARN":
            v_upper = "WARNING"
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level. Must be one of: {valid_levels}")
        return v_upper

    @model_validator(mode="after")
    def check_embedding_provider(self):
        """Ensure an embedding backend can be selected."""
        self.resolve_embedding_provider()
        return self

    def resolve_embedding_provider(self) -> EmbeddingProvider:
        """
        Decide which embedding backend to use.

        An explicit EMBEDDING_PROVIDER wins; otherwise OpenAI is used when an API
        key is present, then Ollama when a server URL is present.

        Raises:
            EmbeddingConfigurationError: If no backend is usable
        """
        provider = self.embedding_provider
        if provider is None:
            if self.openai_api_key:
                provider = "openai"
            elif self.ollama_url:
                provider = "ollama"
            else:
                raise EmbeddingConfigurationError(
                    "Either OPENAI_API_KEY or OLLAMA_URL must be set "
                    "(or EMBEDDING_PROVIDER=local)"
                )

        if provider == "openai" and not self.openai_api_key:
            raise EmbeddingConfigurationError("EMBEDDING_PROVIDER=openai requires OPENAI_API_KEY")
        if provider == "ollama" and not self.ollama_url:
            raise EmbeddingConfigurationError("EMBEDDING_PROVIDER=ollama requires OLLAMA_URL")
        return provider

    def get_embedding_config(self) -> EmbeddingConfig:
        """Get the embedding configuration for the selected backend."""
        provider = self.resolve_embedding_provider()
        model_name = self.embedding_model or DEFAULT_MODELS[provider]
        return build_embedding_config(provider, model_name, self.embedding_dimensions)

    def ensure_directories(self):
        """Create necessary directories if they don't exist."""
        if self.log_file:
            self.log_file.parent.mkdir(parents=True, exist_ok=True)


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global settings instance.

    Creates and caches the settings on first call.
    """
    global _settings
    if _settings is None:
        _settings = Settings()
        _settings.ensure_directories()
    return _settings


def reset_settings():
    """Reset the global settings instance (mainly for testing)."""
    global _settings
    _settings = None
