"""Embedding backends with abstract base."""

from docstore.embeddings.base import BaseEmbedder
from docstore.embeddings.openai import OpenAIEmbedder
from docstore.embeddings.ollama import OllamaEmbedder

__all__ = [
    "BaseEmbedder",
    "OpenAIEmbedder",
    "OllamaEmbedder",
]
