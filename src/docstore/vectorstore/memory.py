"""In-memory vector store for local testing and small datasets."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable

from docstore.exceptions import NativeFilterUnavailable, StorageFailure
from docstore.filters.ast import FilterNode
from docstore.filters.evaluator import compile_predicate
from docstore.vectorstore.base import BaseVectorStore, StoredDocument, VectorMatch

logger = logging.getLogger(__name__)


@dataclass
class _Entry:
    text: str
    embedding: list[float]
    metadata: dict


@dataclass
class MemoryVectorStore(BaseVectorStore):
    """Dict-backed store with brute-force cosine similarity.

    Its native filter form is a compiled in-process predicate. Pass
    ``native_filters=False`` to make ``translate_filter`` refuse every expression.
    Ties in similarity keep insertion order.
    """

    native_filters: bool = True
    dimension: int | None = None
    _entries: dict[str, _Entry] = field(default_factory=dict, init=False, repr=False)

    def initialize_schema(self, dimension: int | None = None) -> None:
        if dimension is not None:
            self.dimension = dimension

    def upsert(
        self,
        ids: list[str],
        texts: list[str],
        embeddings: list[list[float]],
        metadatas: list[dict],
    ) -> None:
        if not (len(ids) == len(texts) == len(embeddings) == len(metadatas)):
            raise StorageFailure("upsert arguments must have equal lengths")
        for embedding in embeddings:
            if self.dimension is not None and len(embedding) != self.dimension:
                raise StorageFailure(
                    f"Embedding dimension {len(embedding)} does not match index dimension {self.dimension}"
                )
        for doc_id, text, embedding, metadata in zip(ids, texts, embeddings, metadatas):
            # Re-inserting moves the ID to the end, like a fresh write.
            self._entries.pop(doc_id, None)
            self._entries[doc_id] = _Entry(text, list(embedding), dict(metadata))

    def delete(self, doc_ids: list[str]) -> None:
        for doc_id in doc_ids:
            self._entries.pop(doc_id, None)

    def search(
        self,
        query_embedding: list[float],
        n_results: int = 10,
        native_filter: Callable[[dict], bool] | None = None,
    ) -> list[VectorMatch]:
        matches = [
            VectorMatch(
                doc_id=doc_id,
                similarity=_cosine_similarity(query_embedding, entry.embedding),
                text=entry.text,
                metadata=dict(entry.metadata),
            )
            for doc_id, entry in list(self._entries.items())
            if native_filter is None or native_filter(entry.metadata)
        ]
        matches.sort(key=lambda m: m.similarity, reverse=True)
        return matches[:n_results]

    def get(self, doc_ids: list[str]) -> list[StoredDocument]:
        found = []
        for doc_id in doc_ids:
            entry = self._entries.get(doc_id)
            if entry is not None:
                found.append(StoredDocument(doc_id, entry.text, dict(entry.metadata)))
        return found

    def list_documents(self, native_filter: Callable[[dict], bool] | None = None) -> list[StoredDocument]:
        return [
            StoredDocument(doc_id, entry.text, dict(entry.metadata))
            for doc_id, entry in list(self._entries.items())
            if native_filter is None or native_filter(entry.metadata)
        ]

    def count(self) -> int:
        return len(self._entries)

    def provisioned_dimension(self) -> int | None:
        return self.dimension

    def translate_filter(self, node: FilterNode) -> Callable[[dict], bool]:
        if not self.native_filters:
            raise NativeFilterUnavailable("MemoryVectorStore native filtering is disabled")
        return compile_predicate(node)


def _cosine_similarity(a: list[float], b: list[float]) -> float:
    """Compute cosine similarity between two vectors."""
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (norm_a * norm_b)
