"""Qdrant vector store backend."""

from __future__ import annotations

import logging
import uuid

from docstore.exceptions import StorageFailure
from docstore.filters.ast import FilterNode
from docstore.filters.translate import to_qdrant_filter
from docstore.vectorstore.base import BaseVectorStore, StoredDocument, VectorMatch

logger = logging.getLogger(__name__)

# Qdrant point IDs must be UUIDs or integers; caller IDs are mapped deterministically.
POINT_ID_NAMESPACE = uuid.UUID("6f1d8a52-3c0b-4f8e-9a57-2d1c4b7e9f30")

METADATA_PREFIX = "metadata."


def point_id(doc_id: str) -> str:
    return str(uuid.uuid5(POINT_ID_NAMESPACE, doc_id))


class QdrantVectorStore(BaseVectorStore):
    """Qdrant collection with cosine distance.

    Payload layout is ``{"doc_id", "content", "metadata"}``; filters address
    ``metadata.<field>``.
    """

    def __init__(
        self,
        url: str = "http://localhost:6333",
        collection_name: str = "default",
        vector_size: int = 768,
        timeout: int | None = None,
        client=None,
    ):
        try:
            from qdrant_client import QdrantClient
        except ImportError:
            raise ImportError(
                "qdrant-client is required for QdrantVectorStore. "
                "Install with: pip install docstore[vectorstore-qdrant]"
            )
        self.collection_name = collection_name
        self.vector_size = vector_size
        self._provisioned_size: int | None = None
        try:
            self.client = client if client is not None else QdrantClient(url=url, timeout=timeout)
        except Exception as e:
            raise StorageFailure(f"Failed to initialize Qdrant: {e}") from e

    def initialize_schema(self, dimension: int | None = None) -> None:
        from qdrant_client.models import Distance, VectorParams

        if dimension is not None:
            self.vector_size = dimension
        try:
            if not self.client.collection_exists(self.collection_name):
                self.client.create_collection(
                    collection_name=self.collection_name,
                    vectors_config=VectorParams(size=self.vector_size, distance=Distance.COSINE),
                )
                logger.info(f"Created Qdrant collection '{self.collection_name}' (size={self.vector_size})")
                self._provisioned_size = self.vector_size
            else:
                info = self.client.get_collection(self.collection_name)
                # Named-vector collections carry a dict here; only a single vector has a size.
                size = getattr(info.config.params.vectors, "size", None)
                self._provisioned_size = size if isinstance(size, int) else None
        except Exception as e:
            raise StorageFailure(f"Failed to create Qdrant collection: {e}") from e

    def provisioned_dimension(self) -> int | None:
        return self._provisioned_size

    def upsert(
        self,
        ids: list[str],
        texts: list[str],
        embeddings: list[list[float]],
        metadatas: list[dict],
    ) -> None:
        from qdrant_client.models import PointStruct

        batch_size = 100
        for i in range(0, len(ids), batch_size):
            points = []
            for j in range(i, min(i + batch_size, len(ids))):
                payload = {"doc_id": ids[j], "content": texts[j], "metadata": metadatas[j]}
                points.append(PointStruct(id=point_id(ids[j]), vector=embeddings[j], payload=payload))
            try:
                self.client.upsert(collection_name=self.collection_name, points=points)
            except Exception as e:
                raise StorageFailure(f"Qdrant batch upsert failed: {e}") from e

    def delete(self, doc_ids: list[str]) -> None:
        if not doc_ids:
            return
        from qdrant_client.models import PointIdsList

        try:
            self.client.delete(
                collection_name=self.collection_name,
                points_selector=PointIdsList(points=[point_id(d) for d in doc_ids]),
            )
        except Exception as e:
            raise StorageFailure(f"Qdrant batch delete failed: {e}") from e

    def search(
        self,
        query_embedding: list[float],
        n_results: int = 10,
        native_filter=None,
    ) -> list[VectorMatch]:
        try:
            response = self.client.query_points(
                collection_name=self.collection_name,
                query=query_embedding,
                limit=n_results,
                query_filter=native_filter,
                with_payload=True,
            )
        except Exception as e:
            raise StorageFailure(f"Qdrant search failed: {e}") from e

        results: list[VectorMatch] = []
        for hit in response.points:
            doc = _stored_document(hit)
            results.append(VectorMatch(
                doc_id=doc.doc_id,
                similarity=hit.score,
                text=doc.text,
                metadata=doc.metadata,
            ))
        return results

    def get(self, doc_ids: list[str]) -> list[StoredDocument]:
        if not doc_ids:
            return []
        try:
            records = self.client.retrieve(
                collection_name=self.collection_name,
                ids=[point_id(d) for d in doc_ids],
                with_payload=True,
            )
        except Exception as e:
            raise StorageFailure(f"Qdrant retrieve failed: {e}") from e
        by_id = {doc.doc_id: doc for doc in map(_stored_document, records)}
        return [by_id[d] for d in doc_ids if d in by_id]

    def list_documents(self, native_filter=None) -> list[StoredDocument]:
        documents: list[StoredDocument] = []
        offset = None
        try:
            while True:
                records, offset = self.client.scroll(
                    collection_name=self.collection_name,
                    scroll_filter=native_filter,
                    limit=256,
                    offset=offset,
                    with_payload=True,
                )
                documents.extend(_stored_document(r) for r in records)
                if offset is None:
                    break
        except Exception as e:
            raise StorageFailure(f"Qdrant scroll failed: {e}") from e
        return documents

    def count(self) -> int:
        try:
            return self.client.count(collection_name=self.collection_name, exact=True).count
        except Exception as e:
            raise StorageFailure(f"Qdrant count failed: {e}") from e

    def translate_filter(self, node: FilterNode):
        return to_qdrant_filter(node, prefix=METADATA_PREFIX)


def _stored_document(record) -> StoredDocument:
    payload = record.payload or {}
    return StoredDocument(
        doc_id=payload.get("doc_id", str(record.id)),
        text=payload.get("content"),
        metadata=dict(payload.get("metadata") or {}),
    )
