"""Abstract base class for vector store backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from docstore.filters.ast import FilterNode


@dataclass
class VectorMatch:
    """A single hit from a backend similarity query.

    ``similarity`` is cosine similarity in [-1, 1].
    """

    doc_id: str
    similarity: float
    text: str | None
    metadata: dict


@dataclass
class StoredDocument:
    """A document as read back from a backend, without its vector."""

    doc_id: str
    text: str | None
    metadata: dict


class BaseVectorStore(ABC):
    """Capability interface every storage backend implements.

    Methods raise ``StorageFailure`` for backend errors. ``translate_filter`` raises
    ``NativeFilterUnavailable`` when the backend cannot express a filter.
    """

    @abstractmethod
    def initialize_schema(self, dimension: int | None = None) -> None:
        """Create the collection/index if it does not exist."""
        ...

    @abstractmethod
    def upsert(
        self,
        ids: list[str],
        texts: list[str],
        embeddings: list[list[float]],
        metadatas: list[dict],
    ) -> None:
        """Insert or fully replace documents by ID."""
        ...

    @abstractmethod
    def delete(self, doc_ids: list[str]) -> None:
        """Remove documents by ID. Unknown IDs are ignored."""
        ...

    @abstractmethod
    def search(
        self,
        query_embedding: list[float],
        n_results: int = 10,
        native_filter: Any = None,
    ) -> list[VectorMatch]:
        """Similarity search returning matches ordered by descending similarity."""
        ...

    @abstractmethod
    def get(self, doc_ids: list[str]) -> list[StoredDocument]:
        """Fetch documents by ID, skipping unknown IDs."""
        ...

    @abstractmethod
    def list_documents(self, native_filter: Any = None) -> list[StoredDocument]:
        """All documents, optionally restricted by a native filter."""
        ...

    @abstractmethod
    def count(self) -> int:
        """Total number of documents in the store."""
        ...

    def provisioned_dimension(self) -> int | None:
        """Vector size the backing index was provisioned for, if known."""
        return None

    @abstractmethod
    def translate_filter(self, node: FilterNode) -> Any:
        """Convert a filter AST into this backend's native filter form."""
        ...
