"""
Embedding model catalog.

Maps known embedding models to their output dimensionality and resolves the
embedding configuration for the configured provider.
"""

from typing import Literal, Optional
from pydantic import BaseModel, Field


EmbeddingProvider = Literal["openai", "ollama", "local"]


class EmbeddingConfig(BaseModel):
    """Configuration for an embedding backend."""

    provider: EmbeddingProvider = "openai"
    model_name: str = Field(..., description="Model identifier")
    dimensions: int = Field(..., gt=0, description="Length of produced vectors")
    model_kwargs: dict = Field(default_factory=dict, description="Additional model parameters")
    cache_enabled: bool = Field(default=True, description="Enable content-hash based caching")


# Known models and their vector sizes
MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "nomic-embed-text": 768,
    "mxbai-embed-large": 1024,
    "all-minilm": 384,
    "sentence-transformers/all-MiniLM-L6-v2": 384,
    "sentence-transformers/all-mpnet-base-v2": 768,
    "nomic-ai/nomic-embed-text-v1.5": 768,
}


def guess_dimensions(provider: EmbeddingProvider, model_name: str) -> int:
    """
    Get the vector size for a model.

    Looks the model up in the catalog (ignoring an Ollama ``:tag`` suffix) and
    falls back to a name-based guess for unknown models.

    Args:
        provider: Embedding provider name
        model_name: Model identifier

    Returns:
        Number of dimensions the model produces
    """
    base_name = model_name.split(":", 1)[0] if provider == "ollama" else model_name
    if base_name in MODEL_DIMENSIONS:
        return MODEL_DIMENSIONS[base_name]

    is_large = "large" in model_name.lower()
    if provider == "openai":
        return 3072 if is_large else 1536
    if provider == "ollama":
        return 1024 if is_large else 768
    return 1024 if is_large else 384


def build_embedding_config(
    provider: EmbeddingProvider,
    model_name: str,
    dimensions: Optional[int] = None,
) -> EmbeddingConfig:
    """Create an embedding config, resolving dimensions from the catalog if needed."""
    return EmbeddingConfig(
        provider=provider,
        model_name=model_name,
        dimensions=dimensions or guess_dimensions(provider, model_name),
    )


def list_models() -> list[str]:
    """List all model names with known dimensions."""
    return list(MODEL_DIMENSIONS.keys())
