"""Store configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from docstore.exceptions import ConfigurationError

DEFAULT_TIMEOUT = 30.0
DEFAULT_OVERFETCH_FACTOR = 4
DEFAULT_MAX_WORKERS = 8


@dataclass(frozen=True)
class StoreConfig:
    """Immutable settings passed to ``DocumentStore``.

    Args:
        metadata_fields_to_filter: Metadata fields that filter expressions may reference.
        initialize_schema: Provision the backend collection when the store is created.
        embedding_dimension: Expected vector size. ``None`` pins the first size seen.
        timeout: Default budget in seconds for every external call.
        overfetch_factor: Candidate pool multiplier when filtering in-process.
        max_workers: Threads available for concurrent external calls.
    """

    metadata_fields_to_filter: frozenset[str] = field(default_factory=frozenset)
    initialize_schema: bool = False
    embedding_dimension: int | None = None
    timeout: float = DEFAULT_TIMEOUT
    overfetch_factor: int = DEFAULT_OVERFETCH_FACTOR
    max_workers: int = DEFAULT_MAX_WORKERS

    def __post_init__(self):
        # Accept any iterable of names but store it frozen.
        object.__setattr__(self, "metadata_fields_to_filter", frozenset(self.metadata_fields_to_filter))
        if self.embedding_dimension is not None and self.embedding_dimension <= 0:
            raise ConfigurationError("embedding_dimension must be positive")
        if self.timeout <= 0:
            raise ConfigurationError("timeout must be positive")
        if self.overfetch_factor < 1:
            raise ConfigurationError("overfetch_factor must be at least 1")
        if self.max_workers < 1:
            raise ConfigurationError("max_workers must be at least 1")

    @classmethod
    def from_env(cls, prefix: str = "DOCSTORE_") -> StoreConfig:
        """Build a config from ``DOCSTORE_*`` environment variables."""
        env = os.environ
        kwargs: dict = {}

        fields_raw = env.get(f"{prefix}FILTER_FIELDS")
        if fields_raw:
            kwargs["metadata_fields_to_filter"] = frozenset(
                name.strip() for name in fields_raw.split(",") if name.strip()
            )

        init_raw = env.get(f"{prefix}INITIALIZE_SCHEMA")
        if init_raw is not None:
            kwargs["initialize_schema"] = init_raw.strip().lower() in ("1", "true", "yes", "on")

        for key, name, cast in (
            ("embedding_dimension", "EMBEDDING_DIMENSION", int),
            ("timeout", "TIMEOUT", float),
            ("overfetch_factor", "OVERFETCH_FACTOR", int),
            ("max_workers", "MAX_WORKERS", int),
        ):
            raw = env.get(f"{prefix}{name}")
            if raw is None or not raw.strip():
                continue
            try:
                kwargs[key] = cast(raw)
            except ValueError as e:
                raise ConfigurationError(f"Invalid {prefix}{name}: {raw!r}") from e

        return cls(**kwargs)
