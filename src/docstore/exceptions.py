"""Unified exception hierarchy for docstore."""

from __future__ import annotations


class DocStoreError(Exception):
    """Base exception for all docstore errors."""


# Filters
class FilterError(DocStoreError):
    """Base exception for filter expression problems."""


class FilterParseError(FilterError):
    """Malformed filter expression."""

    def __init__(self, message: str, position: int | None = None, token: str | None = None):
        if position is not None:
            message = f"{message} at position {position}"
        super().__init__(message)
        self.position = position
        self.token = token


class UnfilterableFieldError(FilterError):
    """Filter references a metadata field outside the allow-list."""

    def __init__(self, field: str, allowed: frozenset[str] | set[str] = frozenset()):
        allowed_str = ", ".join(sorted(allowed)) or "<none>"
        super().__init__(f"Field '{field}' is not filterable (allowed: {allowed_str})")
        self.field = field


class NativeFilterUnavailable(FilterError):
    """Backend cannot express the filter natively; evaluate it in-process instead."""


# Requests and configuration
class InvalidRequestError(DocStoreError, ValueError):
    """Bad search or mutation arguments (top_k, threshold, metadata)."""


class ConfigurationError(DocStoreError):
    """Invalid store configuration, including embedding dimension mismatches."""


# Collaborators
class EmbeddingFailure(DocStoreError):
    """Embedding service error. May be transient."""


class StorageFailure(DocStoreError):
    """Vector store backend error. May be transient."""


class OperationTimeoutError(DocStoreError, TimeoutError):
    """An external call exceeded its time budget."""
