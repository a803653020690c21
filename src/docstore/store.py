"""Document store: upsert/delete mutations and filtered similarity search.

``DocumentStore`` is stateless between calls apart from the pinned embedding
dimension. Every embedder and backend call runs on a worker thread and is
awaited with a timeout; no lock is held while waiting.

Scores are ``(1 + cosine) / 2`` in [0, 1] and results carry ``distance = 1 - score``.
Results with equal scores keep the backend's order.
"""

from __future__ import annotations

import logging
import math
import threading
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Callable, Iterable, Sequence

from docstore.config import StoreConfig
from docstore.embeddings.base import BaseEmbedder
from docstore.exceptions import (
    ConfigurationError,
    DocStoreError,
    EmbeddingFailure,
    InvalidRequestError,
    NativeFilterUnavailable,
    OperationTimeoutError,
    StorageFailure,
)
from docstore.filters.ast import FilterNode
from docstore.filters.evaluator import compile_predicate
from docstore.filters.parser import bind_fields, parse_filter
from docstore.models import (
    DISTANCE_KEY,
    Document,
    SearchRequest,
    SearchResult,
    new_document_id,
    score_from_cosine,
)
from docstore.vectorstore.base import BaseVectorStore, StoredDocument

logger = logging.getLogger(__name__)

_SCALAR_TYPES = (str, int, float, bool)


class DocumentStore:
    """Vector-backed document store over a pluggable embedder and backend.

    Args:
        embedder: Embedding gateway used for both documents and queries.
        vector_store: Storage backend implementing ``BaseVectorStore``.
        config: Immutable settings; defaults to ``StoreConfig()``.
    """

    def __init__(
        self,
        embedder: BaseEmbedder,
        vector_store: BaseVectorStore,
        config: StoreConfig | None = None,
    ):
        self.embedder = embedder
        self.vector_store = vector_store
        self.config = config or StoreConfig()
        self._dimension = self.config.embedding_dimension
        self._dimension_lock = threading.Lock()
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers,
            thread_name_prefix="docstore",
        )
        if self.config.initialize_schema:
            self._call("initialize_schema", self.vector_store.initialize_schema, self._dimension)

        provisioned = self.vector_store.provisioned_dimension()
        if provisioned is not None:
            if self._dimension is not None and self._dimension != provisioned:
                self._executor.shutdown(wait=False)
                raise ConfigurationError(
                    f"embedding_dimension {self._dimension} does not match the backend "
                    f"index dimension {provisioned}"
                )
            self._dimension = provisioned

    # Lifecycle

    def close(self) -> None:
        """Stop the worker pool. Calls still running in the background are abandoned."""
        self._executor.shutdown(wait=False, cancel_futures=True)

    def __enter__(self) -> DocumentStore:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # Mutations

    def add(self, documents: Iterable[Document], timeout: float | None = None) -> list[str]:
        """Embed and upsert documents, replacing any stored document with the same ID.

        The whole batch is embedded before anything is written. A failure may still
        leave the batch partially written by the backend; re-submitting it is safe.

        On success each input document gets its stored vector in ``embedding`` and,
        if it had none, its generated ``id``.

        Returns:
            The document IDs in input order, including any generated ones.
        """
        documents = list(documents)
        normalized = [self._normalize(doc) for doc in documents]
        if not normalized:
            return []

        # Duplicate IDs within one batch: the last occurrence wins.
        unique: dict[str, Document] = {}
        for doc in normalized:
            unique[doc.id] = doc
        batch = list(unique.values())

        embeddings = self._call(
            "embed",
            self.embedder.embed_batch,
            [doc.content for doc in batch],
            timeout=timeout,
            failure=EmbeddingFailure,
        )
        if len(embeddings) != len(batch):
            raise EmbeddingFailure(
                f"Embedder returned {len(embeddings)} vectors for {len(batch)} documents"
            )
        for embedding in embeddings:
            self._check_dimension(embedding)

        self._call(
            "upsert",
            self.vector_store.upsert,
            [doc.id for doc in batch],
            [doc.content for doc in batch],
            [list(e) for e in embeddings],
            [doc.metadata for doc in batch],
            timeout=timeout,
        )
        logger.info(f"Upserted {len(batch)} documents")

        vectors = {doc.id: embedding for doc, embedding in zip(batch, embeddings)}
        for original, doc in zip(documents, normalized):
            original.id = doc.id
            original.embedding = list(vectors[doc.id])
        return [doc.id for doc in normalized]

    def delete(self, ids: Sequence[str], timeout: float | None = None) -> None:
        """Delete documents by ID. Unknown IDs are ignored."""
        if isinstance(ids, str):
            raise InvalidRequestError("delete() expects a sequence of IDs, not a string")
        doc_ids = list(dict.fromkeys(ids))
        for doc_id in doc_ids:
            if not isinstance(doc_id, str) or not doc_id:
                raise InvalidRequestError(f"Invalid document ID: {doc_id!r}")
        if not doc_ids:
            return
        self._call("delete", self.vector_store.delete, doc_ids, timeout=timeout)
        logger.info(f"Deleted {len(doc_ids)} document IDs")

    def delete_by_filter(self, filter_expression: str, timeout: float | None = None) -> int:
        """Delete every document matching ``filter_expression``. Returns the count removed."""
        node = self._compile_filter(filter_expression)
        if node is None:
            raise InvalidRequestError("delete_by_filter() requires a non-empty filter expression")
        try:
            native = self.vector_store.translate_filter(node)
        except NativeFilterUnavailable as e:
            logger.warning(f"Scanning in-process for delete: {e}")
            predicate = compile_predicate(node)
            stored = self._call("list_documents", self.vector_store.list_documents, timeout=timeout)
            matching = [doc for doc in stored if predicate(doc.metadata)]
        else:
            matching = self._call(
                "list_documents", self.vector_store.list_documents, native, timeout=timeout
            )

        doc_ids = [doc.doc_id for doc in matching]
        if doc_ids:
            self._call("delete", self.vector_store.delete, doc_ids, timeout=timeout)
        logger.info(f"Deleted {len(doc_ids)} documents matching {filter_expression!r}")
        return len(doc_ids)

    # Reads

    def get(self, ids: Sequence[str], timeout: float | None = None) -> list[Document]:
        """Fetch stored documents by ID, skipping unknown IDs. Embeddings are not returned."""
        if isinstance(ids, str):
            raise InvalidRequestError("get() expects a sequence of IDs, not a string")
        doc_ids = list(dict.fromkeys(ids))
        if not doc_ids:
            return []
        stored = self._call("get", self.vector_store.get, doc_ids, timeout=timeout)
        return [_to_document(doc) for doc in stored]

    def count(self, timeout: float | None = None) -> int:
        return self._call("count", self.vector_store.count, timeout=timeout)

    def similarity_search(
        self,
        request: SearchRequest | str,
        timeout: float | None = None,
    ) -> list[SearchResult]:
        """Return up to ``top_k`` documents ranked by descending score.

        The filter is parsed and checked against ``metadata_fields_to_filter``
        before any external call. When the backend cannot express the filter
        natively, ``top_k * overfetch_factor`` candidates are fetched and filtered
        in-process, which can lower recall for selective filters.
        """
        if isinstance(request, str):
            request = SearchRequest(query=request)
        _validate_request(request)
        node = self._compile_filter(request.filter_expression)

        query_embedding = self._call(
            "embed_query",
            self.embedder.embed_query,
            request.query,
            timeout=timeout,
            failure=EmbeddingFailure,
        )
        self._check_dimension(query_embedding)

        native_filter: Any = None
        predicate: Callable | None = None
        if node is not None:
            try:
                native_filter = self.vector_store.translate_filter(node)
            except NativeFilterUnavailable as e:
                logger.warning(f"Filtering in-process: {e}")
                predicate = compile_predicate(node)

        n_candidates = request.top_k
        if predicate is not None:
            n_candidates = request.top_k * self.config.overfetch_factor

        matches = self._call(
            "search",
            self.vector_store.search,
            list(query_embedding),
            n_candidates,
            native_filter,
            timeout=timeout,
        )
        if predicate is not None:
            matches = [m for m in matches if predicate(m.metadata)]

        results = [
            SearchResult(
                document=Document(content=m.text or "", metadata=dict(m.metadata), id=m.doc_id),
                score=score_from_cosine(m.similarity),
            )
            for m in matches
        ]
        # Stable: equal scores keep backend order.
        results.sort(key=lambda r: r.score, reverse=True)
        results = results[: request.top_k]

        if request.similarity_threshold is not None:
            results = [r for r in results if r.score >= request.similarity_threshold]

        logger.debug(
            f"Search returned {len(results)} of {len(matches)} candidates "
            f"(filter={'in-process' if predicate else 'native' if node else 'none'})"
        )
        return results

    # Internals

    def _compile_filter(self, expression: str | None) -> FilterNode | None:
        if expression is not None and not isinstance(expression, str):
            raise InvalidRequestError("filter_expression must be a string")
        node = parse_filter(expression)
        if node is None:
            return None
        return bind_fields(node, self.config.metadata_fields_to_filter)

    def _call(
        self,
        operation: str,
        fn: Callable,
        *args,
        timeout: float | None = None,
        failure: type[DocStoreError] = StorageFailure,
    ):
        """Run ``fn`` on the worker pool and wait at most the timeout budget."""
        budget = self.config.timeout if timeout is None else timeout
        if budget <= 0:
            raise InvalidRequestError(f"timeout must be positive, got {budget}")
        future = self._executor.submit(fn, *args)
        done, _ = wait([future], timeout=budget)
        if not done:
            future.cancel()
            logger.warning(f"{operation} exceeded its {budget}s timeout")
            raise OperationTimeoutError(f"{operation} timed out after {budget}s")
        try:
            return future.result()
        except DocStoreError:
            raise
        except Exception as e:
            raise failure(f"{operation} failed: {e}") from e

    def _check_dimension(self, embedding: Sequence[float]) -> None:
        size = len(embedding)
        if self._dimension is None:
            with self._dimension_lock:
                if self._dimension is None:
                    self._dimension = size
        if size != self._dimension:
            raise ConfigurationError(
                f"Embedding dimension mismatch: got {size}, collection expects {self._dimension}"
            )

    def _normalize(self, document: Document) -> Document:
        if not isinstance(document, Document):
            raise InvalidRequestError(f"Expected Document, got {type(document).__name__}")
        if not isinstance(document.content, str):
            raise InvalidRequestError(f"Document {document.id!r} content must be a string")

        metadata: dict = {}
        for key, value in (document.metadata or {}).items():
            if not isinstance(key, str):
                raise InvalidRequestError(f"Metadata keys must be strings, got {key!r}")
            if key == DISTANCE_KEY:
                raise InvalidRequestError(f"Metadata key '{DISTANCE_KEY}' is reserved")
            if value is None:
                continue
            if not isinstance(value, _SCALAR_TYPES):
                raise InvalidRequestError(
                    f"Metadata '{key}' must be a string, number or boolean, "
                    f"got {type(value).__name__}"
                )
            if isinstance(value, float) and not math.isfinite(value):
                raise InvalidRequestError(f"Metadata '{key}' must be finite")
            metadata[key] = value

        return Document(
            content=document.content,
            metadata=metadata,
            id=document.id or new_document_id(),
        )


def _validate_request(request: SearchRequest) -> None:
    if not isinstance(request, SearchRequest):
        raise InvalidRequestError(f"Expected SearchRequest, got {type(request).__name__}")
    if not isinstance(request.query, str):
        raise InvalidRequestError("query must be a string")
    top_k = request.top_k
    if isinstance(top_k, bool) or not isinstance(top_k, int) or top_k <= 0:
        raise InvalidRequestError(f"top_k must be a positive integer, got {top_k!r}")
    threshold = request.similarity_threshold
    if threshold is not None:
        if isinstance(threshold, bool) or not isinstance(threshold, (int, float)):
            raise InvalidRequestError(f"similarity_threshold must be a number, got {threshold!r}")
        if not 0.0 <= threshold <= 1.0:
            raise InvalidRequestError(
                f"similarity_threshold must be within [0.0, 1.0], got {threshold}"
            )


def _to_document(stored: StoredDocument) -> Document:
    return Document(content=stored.text or "", metadata=dict(stored.metadata), id=stored.doc_id)
