"""Documents, search requests and search results."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from typing import Union

MetadataValue = Union[str, int, float, bool]

DISTANCE_KEY = "distance"

# Explicit "no threshold" sentinel: return everything up to top_k.
SIMILARITY_THRESHOLD_ACCEPT_ALL = None

DEFAULT_TOP_K = 4


def new_document_id() -> str:
    return str(uuid.uuid4())


@dataclass
class Document:
    """A text document with scalar metadata.

    ``embedding`` is filled in by the store on write; anything the caller sets is
    overwritten.
    """

    content: str
    metadata: dict[str, MetadataValue] = field(default_factory=dict)
    id: str = field(default_factory=new_document_id)
    embedding: list[float] | None = None


@dataclass(frozen=True)
class SearchRequest:
    """Similarity search parameters.

    ``similarity_threshold`` is a minimum score in [0, 1]; ``None`` disables
    threshold filtering.
    """

    query: str
    top_k: int = DEFAULT_TOP_K
    filter_expression: str | None = None
    similarity_threshold: float | None = SIMILARITY_THRESHOLD_ACCEPT_ALL

    def with_top_k(self, top_k: int) -> SearchRequest:
        return replace(self, top_k=top_k)

    def with_filter_expression(self, expression: str | None) -> SearchRequest:
        return replace(self, filter_expression=expression)

    def with_similarity_threshold(self, threshold: float) -> SearchRequest:
        return replace(self, similarity_threshold=threshold)

    def with_similarity_threshold_all(self) -> SearchRequest:
        return replace(self, similarity_threshold=SIMILARITY_THRESHOLD_ACCEPT_ALL)


@dataclass
class SearchResult:
    """A matched document with its computed score.

    ``score`` is in [0, 1], higher is more similar. ``distance`` is ``1 - score``.
    """

    document: Document
    score: float

    @property
    def id(self) -> str:
        return self.document.id

    @property
    def content(self) -> str:
        return self.document.content

    @property
    def distance(self) -> float:
        return 1.0 - self.score

    @property
    def metadata(self) -> dict:
        """Stored metadata plus the derived ``distance`` key."""
        return {**self.document.metadata, DISTANCE_KEY: self.distance}


def score_from_cosine(similarity: float) -> float:
    """Map cosine similarity in [-1, 1] onto a score in [0, 1]."""
    return min(1.0, max(0.0, (1.0 + similarity) / 2.0))
