"""Vector store backends with abstract base."""

from docstore.vectorstore.base import BaseVectorStore, StoredDocument, VectorMatch
from docstore.vectorstore.chroma import ChromaVectorStore
from docstore.vectorstore.memory import MemoryVectorStore
from docstore.vectorstore.qdrant import QdrantVectorStore

__all__ = [
    "BaseVectorStore",
    "StoredDocument",
    "VectorMatch",
    "ChromaVectorStore",
    "MemoryVectorStore",
    "QdrantVectorStore",
]
