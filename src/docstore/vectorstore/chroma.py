"""ChromaDB vector store backend."""

from __future__ import annotations

import logging
from pathlib import Path

from docstore.exceptions import StorageFailure
from docstore.filters.ast import FilterNode
from docstore.filters.translate import to_chroma_where
from docstore.vectorstore.base import BaseVectorStore, StoredDocument, VectorMatch

logger = logging.getLogger(__name__)

COLLECTION_NAME = "documents"


class ChromaVectorStore(BaseVectorStore):
    """ChromaDB collection in cosine space.

    Args:
        persist_dir: Directory for a persistent client. ``None`` uses an in-memory client.
        collection_name: Collection to read and write.
    """

    def __init__(self, persist_dir: Path | None = None, collection_name: str = COLLECTION_NAME):
        try:
            import chromadb
        except ImportError:
            raise ImportError(
                "chromadb is required for ChromaVectorStore. "
                "Install with: pip install docstore[vectorstore-chroma]"
            )
        self.collection_name = collection_name
        self._collection = None
        try:
            if persist_dir is None:
                self.client = chromadb.EphemeralClient()
            else:
                persist_dir = Path(persist_dir)
                persist_dir.mkdir(parents=True, exist_ok=True)
                self.client = chromadb.PersistentClient(path=str(persist_dir))
        except Exception as e:
            raise StorageFailure(f"Failed to initialize ChromaDB: {e}") from e

    @property
    def collection(self):
        if self._collection is None:
            try:
                self._collection = self.client.get_collection(name=self.collection_name)
            except Exception as e:
                raise StorageFailure(
                    f"ChromaDB collection '{self.collection_name}' is not available: {e}"
                ) from e
        return self._collection

    def initialize_schema(self, dimension: int | None = None) -> None:
        # Chroma infers the dimension from the first write.
        try:
            self._collection = self.client.get_or_create_collection(
                name=self.collection_name,
                metadata={"hnsw:space": "cosine"},
            )
        except Exception as e:
            raise StorageFailure(f"Failed to create ChromaDB collection: {e}") from e
        logger.info(f"ChromaDB collection '{self.collection_name}' ready")

    def upsert(
        self,
        ids: list[str],
        texts: list[str],
        embeddings: list[list[float]],
        metadatas: list[dict],
    ) -> None:
        batch_size = 5000
        try:
            # Chroma's upsert merges metadata keys; delete first so the write replaces.
            self.collection.delete(ids=ids)
            for i in range(0, len(ids), batch_size):
                self.collection.add(
                    ids=ids[i : i + batch_size],
                    documents=texts[i : i + batch_size],
                    embeddings=embeddings[i : i + batch_size],
                    metadatas=[m or None for m in metadatas[i : i + batch_size]],
                )
        except StorageFailure:
            raise
        except Exception as e:
            raise StorageFailure(f"ChromaDB upsert failed: {e}") from e

    def delete(self, doc_ids: list[str]) -> None:
        if not doc_ids:
            return
        try:
            self.collection.delete(ids=doc_ids)
        except StorageFailure:
            raise
        except Exception as e:
            raise StorageFailure(f"ChromaDB delete failed: {e}") from e

    def search(
        self,
        query_embedding: list[float],
        n_results: int = 10,
        native_filter: dict | None = None,
    ) -> list[VectorMatch]:
        kwargs: dict = {
            "query_embeddings": [query_embedding],
            "n_results": n_results,
            "include": ["documents", "metadatas", "distances"],
        }
        if native_filter:
            kwargs["where"] = native_filter

        try:
            raw = self.collection.query(**kwargs)
        except StorageFailure:
            raise
        except Exception as e:
            raise StorageFailure(f"ChromaDB search failed: {e}") from e

        results: list[VectorMatch] = []
        if raw["ids"] and raw["ids"][0]:
            ids = raw["ids"][0]
            distances = raw["distances"][0] if raw.get("distances") else [0.0] * len(ids)
            documents = raw["documents"][0] if raw.get("documents") else [None] * len(ids)
            metadatas = raw["metadatas"][0] if raw.get("metadatas") else [{}] * len(ids)

            for doc_id, dist, doc, meta in zip(ids, distances, documents, metadatas):
                results.append(VectorMatch(
                    doc_id=doc_id,
                    similarity=1.0 - dist,  # cosine distance -> cosine similarity
                    text=doc,
                    metadata=dict(meta or {}),
                ))

        return results

    def get(self, doc_ids: list[str]) -> list[StoredDocument]:
        if not doc_ids:
            return []
        return self._get(ids=doc_ids)

    def list_documents(self, native_filter: dict | None = None) -> list[StoredDocument]:
        if native_filter:
            return self._get(where=native_filter)
        return self._get()

    def _get(self, **kwargs) -> list[StoredDocument]:
        try:
            raw = self.collection.get(include=["metadatas", "documents"], **kwargs)
        except StorageFailure:
            raise
        except Exception as e:
            raise StorageFailure(f"ChromaDB get failed: {e}") from e
        documents = raw.get("documents") or [None] * len(raw["ids"])
        metadatas = raw.get("metadatas") or [None] * len(raw["ids"])
        return [
            StoredDocument(doc_id=doc_id, text=doc, metadata=dict(meta or {}))
            for doc_id, doc, meta in zip(raw["ids"], documents, metadatas)
        ]

    def count(self) -> int:
        try:
            return self.collection.count()
        except StorageFailure:
            raise
        except Exception as e:
            raise StorageFailure(f"ChromaDB count failed: {e}") from e

    def translate_filter(self, node: FilterNode) -> dict:
        return to_chroma_where(node)
