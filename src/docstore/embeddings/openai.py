"""OpenAI embedding backend."""

from __future__ import annotations

import logging

from docstore.embeddings.base import BaseEmbedder
from docstore.exceptions import EmbeddingFailure, OperationTimeoutError

logger = logging.getLogger(__name__)

OPENAI_EMBEDDINGS_URL = "https://api.openai.com/v1/embeddings"


class OpenAIEmbedder(BaseEmbedder):
    """OpenAI embeddings API.

    Requests are not retried here; rate limits and network errors surface as
    ``EmbeddingFailure`` so the caller decides on backoff.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "text-embedding-3-small",
        timeout: float = 30.0,
        batch_size: int = 100,
    ):
        if not api_key:
            raise EmbeddingFailure(
                "OpenAI API key is required. "
                "Pass it directly or set OPENAI_API_KEY in your environment."
            )
        try:
            import httpx  # noqa: F401
        except ImportError:
            raise ImportError(
                "httpx is required for OpenAIEmbedder. "
                "Install with: pip install docstore[embeddings]"
            )
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.batch_size = batch_size

    def _call_api(self, texts: list[str]) -> list[list[float]]:
        import httpx

        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(
                    OPENAI_EMBEDDINGS_URL,
                    json={"input": texts, "model": self.model},
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                )
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            raise OperationTimeoutError(f"OpenAI embedding timed out after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise EmbeddingFailure(f"OpenAI embedding failed: {e}") from e

        try:
            # Sort by index to maintain order
            sorted_data = sorted(data["data"], key=lambda x: x["index"])
            return [item["embedding"] for item in sorted_data]
        except (KeyError, TypeError) as e:
            raise EmbeddingFailure(f"Unexpected OpenAI embedding response: {e}") from e

    def embed(self, text: str) -> list[float]:
        return self._call_api([text])[0]

    def embed_query(self, text: str) -> list[float]:
        return self._call_api([text])[0]

    def embed_batch(self, texts: list[str]) -> list[list[float]]:
        all_embeddings: list[list[float]] = []
        for i in range(0, len(texts), self.batch_size):
            chunk = texts[i : i + self.batch_size]
            all_embeddings.extend(self._call_api(chunk))
        logger.debug(f"Embedded {len(texts)} texts with {self.model}")
        return all_embeddings
