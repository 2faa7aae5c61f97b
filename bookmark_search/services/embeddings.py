"""
Embedding service for generating text embeddings.

Supports a remote API (OpenAI), a local model server (Ollama) and in-process
sentence-transformers models. The backend is chosen once at startup and shared
by indexing and search, so queries and documents live in the same vector space.
"""

import asyncio
import hashlib
import logging
import os
from collections import OrderedDict
from abc import ABC, abstractmethod
from typing import Optional

import aiohttp
from openai import AsyncOpenAI
from sentence_transformers import SentenceTransformer

from bookmark_search.config.models import EmbeddingConfig
from bookmark_search.config.settings import Settings
from bookmark_search.errors import EmbeddingConfigurationError, EmbeddingError


logger = logging.getLogger(__name__)

# Upper bound on cached vectors; search queries are cached too
EMBEDDING_CACHE_SIZE = 1000


class EmbeddingService(ABC):
    """Abstract base class for embedding services."""

    def __init__(self, config: EmbeddingConfig):
        self.config = config

    @property
    def dimensions(self) -> int:
        """Length of the vectors produced by this service."""
        return self.get_embedding_dim()

    def get_embedding_dim(self) -> int:
        """Get the dimensionality of embeddings."""
        return self.config.dimensions

    @abstractmethod
    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """
        Generate embeddings for multiple texts.

        Args:
            texts: List of input texts

        Returns:
            One embedding per input text, in input order
        """
        pass

    async def embed_text(self, text: str) -> list[float]:
        """
        Generate embedding for a single text.

        Args:
            text: Input text

        Returns:
            Embedding vector as list of floats
        """
        embeddings = await self.embed_batch([text])
        return embeddings[0]

    def _check_embeddings(self, texts: list[str], embeddings: list[list[float]]):
        """Verify that a backend returned one correctly sized vector per text."""
        if len(embeddings) != len(texts):
            raise EmbeddingError(
                f"Embedding backend returned {len(embeddings)} vectors for {len(texts)} texts"
            )
        for embedding in embeddings:
            if len(embedding) != self.config.dimensions:
                raise EmbeddingError(
                    f"Model {self.config.model_name} returned a vector of size "
                    f"{len(embedding)}, expected {self.config.dimensions}. "
                    f"Set EMBEDDING_DIMENSIONS to the model's real size."
                )

    @staticmethod
    def compute_content_hash(text: str) -> str:
        """
        Compute SHA256 hash of text content for caching.

        Args:
            text: Input text

        Returns:
            Hex string of hash
        """
        return hashlib.sha256(text.encode("utf-8")).hexdigest()

    async def close(self):
        """Release network resources held by the service."""
        return None


class OpenAIEmbeddingService(EmbeddingService):
    """Embedding service using the OpenAI embeddings API."""

    def __init__(
        self,
        config: EmbeddingConfig,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Initialize OpenAI embedding service.

        Args:
            config: Embedding configuration
            api_key: OpenAI API key
            timeout: Request timeout in seconds
            client: Preconfigured client (mainly for testing)
        """
        super().__init__(config)
        self.api_key = api_key
        self.timeout = timeout
        self._client = client

        logger.info(f"Initialized OpenAIEmbeddingService with model: {config.model_name}")

    def _get_client(self) -> AsyncOpenAI:
        """Lazy initialize OpenAI client."""
        if self._client is None:
            api_key = self.api_key or os.getenv("OPENAI_API_KEY")
            if not api_key:
                raise EmbeddingConfigurationError("OpenAI API key not provided")

            base_url = self.config.model_kwargs.get("base_url")
            kwargs = {"api_key": api_key}
            if base_url:
                kwargs["base_url"] = base_url
            if self.timeout:
                kwargs["timeout"] = self.timeout
            self._client = AsyncOpenAI(**kwargs)

        return self._client

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts with a single API request."""
        if not texts:
            return []

        logger.debug(f"Generating embeddings for {len(texts)} texts via OpenAI")
        client = self._get_client()
        response = await client.embeddings.create(
            model=self.config.model_name,
            input=texts,
        )

        # The API tags each vector with its input position
        ordered = sorted(response.data, key=lambda item: item.index)
        embeddings = [list(item.embedding) for item in ordered]
        self._check_embeddings(texts, embeddings)
        return embeddings

    async def close(self):
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.close()
            self._client = None


class OllamaEmbeddingService(EmbeddingService):
    """
    Embedding service using an Ollama server.

    Ollama's batch embedding is unreliable across versions, so texts are sent
    one request at a time.
    """

    def __init__(
        self,
        config: EmbeddingConfig,
        base_url: str,
        timeout: Optional[float] = None,
    ):
        """
        Initialize Ollama embedding service.

        Args:
            config: Embedding configuration
            base_url: Base URL of the Ollama server
            timeout: Request timeout in seconds
        """
        super().__init__(config)
        self.base_url = base_url.rstrip("/")
        self.timeout = aiohttp.ClientTimeout(total=timeout) if timeout else None
        self.session: Optional[aiohttp.ClientSession] = None

        logger.info(f"Initialized OllamaEmbeddingService with model: {config.model_name} at {self.base_url}")

    async def _ensure_session(self):
        """Ensure aiohttp session exists."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(timeout=self.timeout)

    async def _embed_one(self, text: str) -> list[float]:
        """Request the embedding of one text."""
        await self._ensure_session()
        async with self.session.post(
            f"{self.base_url}/api/embed",
            json={"model": self.config.model_name, "input": text},
        ) as response:
            if response.status != 200:
                error_text = await response.text()
                raise EmbeddingError(f"Ollama API error: {response.status} {error_text}")
            data = await response.json()

        embeddings = data.get("embeddings") or []
        if not embeddings:
            raise EmbeddingError(f"Ollama returned no embedding for model {self.config.model_name}")
        return embeddings[0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts, one request per text."""
        if not texts:
            return []

        logger.debug(f"Generating embeddings for {len(texts)} texts via Ollama")
        embeddings = []
        for text in texts:
            embeddings.append(await self._embed_one(text))

        self._check_embeddings(texts, embeddings)
        return embeddings

    async def close(self):
        """Close the HTTP session."""
        if self.session and not self.session.closed:
            await self.session.close()


class LocalEmbeddingService(EmbeddingService):
    """
    Embedding service using local sentence-transformer models.

    Uses HuggingFace sentence-transformers for in-process inference.
    """

    def __init__(
        self,
        config: EmbeddingConfig,
        cache_dir: Optional[str] = None,
        cache_size: int = EMBEDDING_CACHE_SIZE,
    ):
        """
        Initialize local embedding service.

        Args:
            config: Embedding configuration
            cache_dir: Directory to cache model weights
            cache_size: Maximum number of cached vectors (least recently used are evicted)
        """
        super().__init__(config)
        self.cache_dir = cache_dir
        self.cache_size = cache_size
        self._model: Optional[SentenceTransformer] = None
        self._embedding_cache: OrderedDict[str, list[float]] = OrderedDict()

        logger.info(f"Initialized LocalEmbeddingService with model: {config.model_name}")

    def _load_model(self):
        """Lazy load the embedding model."""
        if self._model is None:
            logger.info(f"Loading embedding model: {self.config.model_name}")

            model_kwargs = self.config.model_kwargs.copy()
            if self.cache_dir:
                model_kwargs["cache_folder"] = self.cache_dir

            self._model = SentenceTransformer(
                self.config.model_name,
                **model_kwargs
            )

            logger.info(
                f"Model loaded. Embedding dimension: {self._model.get_sentence_embedding_dimension()}"
            )

    def _encode(self, texts: list[str]) -> list[list[float]]:
        """Run the model on a list of texts (CPU-bound)."""
        self._load_model()
        embeddings = self._model.encode(
            texts,
            convert_to_numpy=True,
            show_progress_bar=len(texts) > 10,
        )
        return [embedding.tolist() for embedding in embeddings]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts."""
        if not texts:
            return []

        results: list[Optional[list[float]]] = [None] * len(texts)
        uncached_texts = []
        uncached_indices = []

        for i, text in enumerate(texts):
            content_hash = self.compute_content_hash(text)
            if self.config.cache_enabled and content_hash in self._embedding_cache:
                self._embedding_cache.move_to_end(content_hash)
                results[i] = self._embedding_cache[content_hash]
            else:
                uncached_texts.append(text)
                uncached_indices.append(i)

        if uncached_texts:
            logger.info(f"Generating embeddings for {len(uncached_texts)} texts")
            # Keep inference off the event loop
            embeddings = await asyncio.to_thread(self._encode, uncached_texts)

            for idx, embedding in zip(uncached_indices, embeddings):
                results[idx] = embedding
                if self.config.cache_enabled:
                    self._cache_put(self.compute_content_hash(texts[idx]), embedding)

        self._check_embeddings(texts, results)
        return results

    def _cache_put(self, content_hash: str, embedding: list[float]):
        """Store a vector, evicting the least recently used entries beyond the cap."""
        self._embedding_cache[content_hash] = embedding
        self._embedding_cache.move_to_end(content_hash)
        while len(self._embedding_cache) > self.cache_size:
            self._embedding_cache.popitem(last=False)

    def clear_cache(self):
        """Clear the embedding cache."""
        self._embedding_cache.clear()
        logger.info("Embedding cache cleared")


def create_embedding_service(
    settings: Settings,
    config: Optional[EmbeddingConfig] = None,
) -> EmbeddingService:
    """
    Factory function to create the configured embedding service.

    Args:
        settings: Application settings
        config: Embedding configuration (resolved from settings if omitted)

    Returns:
        Configured embedding service

    Raises:
        EmbeddingConfigurationError: If no backend is configured
    """
    if config is None:
        config = settings.get_embedding_config()

    logger.info(
        f"Using {config.provider} embeddings with model: {config.model_name} "
        f"({config.dimensions} dimensions)"
    )

    if config.provider == "openai":
        return OpenAIEmbeddingService(
            config,
            api_key=settings.openai_api_key,
            timeout=settings.request_timeout_seconds,
        )
    elif config.provider == "ollama":
        if not settings.ollama_url:
            raise EmbeddingConfigurationError("OLLAMA_URL must be set for Ollama embeddings")
        return OllamaEmbeddingService(
            config,
            base_url=settings.ollama_url,
            timeout=settings.request_timeout_seconds,
        )
    elif config.provider == "local":
        return LocalEmbeddingService(config)
    else:
        raise EmbeddingConfigurationError(f"Invalid embedding provider: {config.provider}")
