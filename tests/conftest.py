"""Shared fixtures: a deterministic keyword embedder and in-memory stores."""

import re

import pytest

from docstore import DocumentStore, StoreConfig
from docstore.embeddings.base import BaseEmbedder
from docstore.vectorstore.memory import MemoryVectorStore

VOCABULARY = [
    "spring", "ai", "framework", "world", "big", "salvation",
    "time", "shelter", "great", "depression", "hello", "foobar",
]


class KeywordEmbedder(BaseEmbedder):
    """Counts vocabulary words; a constant last component keeps vectors non-zero."""

    def __init__(self):
        self.document_calls = 0
        self.query_calls = 0

    def _vector(self, text):
        words = re.findall(r"[a-z]+", text.lower())
        return [float(words.count(w)) for w in VOCABULARY] + [1.0]

    def embed(self, text):
        self.document_calls += 1
        return self._vector(text)

    def embed_query(self, text):
        self.query_calls += 1
        return self._vector(text)


@pytest.fixture
def embedder():
    return KeywordEmbedder()


@pytest.fixture(params=[True, False], ids=["native", "in-process"])
def backend(request):
    return MemoryVectorStore(native_filters=request.param)


@pytest.fixture
def store(embedder, backend):
    config = StoreConfig(metadata_fields_to_filter={"country", "year", "meta1", "meta2"})
    with DocumentStore(embedder, backend, config) as s:
        yield s
