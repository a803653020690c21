"""Ollama embedding backend."""

from __future__ import annotations

import logging

from docstore.embeddings.base import BaseEmbedder
from docstore.exceptions import EmbeddingFailure, OperationTimeoutError

logger = logging.getLogger(__name__)


class OllamaEmbedder(BaseEmbedder):
    """Ollama local embeddings."""

    def __init__(
        self,
        base_url: str = "http://localhost:11434",
        model: str = "nomic-embed-text",
        timeout: float = 30.0,
    ):
        try:
            import httpx  # noqa: F401
        except ImportError:
            raise ImportError(
                "httpx is required for OllamaEmbedder. "
                "Install with: pip install docstore[embeddings]"
            )
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout

    def _call_api(self, text: str) -> list[float]:
        import httpx

        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(
                    f"{self.base_url}/api/embeddings",
                    json={"model": self.model, "prompt": text},
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            raise OperationTimeoutError(f"Ollama embedding timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise EmbeddingFailure(f"Ollama embedding failed: {e}") from e

        embedding = data.get("embedding") if isinstance(data, dict) else None
        if not embedding:
            raise EmbeddingFailure(f"Ollama returned no embedding for model {self.model}")
        return embedding

    def embed(self, text: str) -> list[float]:
        return self._call_api(text)

    def embed_query(self, text: str) -> list[float]:
        return self._call_api(text)

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        # Ollama doesn't support batch, call one at a time
        return [self._call_api(text) for text in texts]
