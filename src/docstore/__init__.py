"""Vector-backed document store with a metadata filter language."""

from docstore.config import StoreConfig
from docstore.models import (
    SIMILARITY_THRESHOLD_ACCEPT_ALL,
    Document,
    SearchRequest,
    SearchResult,
)
from docstore.store import DocumentStore

__all__ = [
    "DocumentStore",
    "Document",
    "SearchRequest",
    "SearchResult",
    "StoreConfig",
    "SIMILARITY_THRESHOLD_ACCEPT_ALL",
]
