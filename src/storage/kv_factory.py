# src/storage/kv_factory.py - v1
"""Factory for key-value store instantiation."""

from __future__ import annotations

from typing import TYPE_CHECKING

from gendispatch.storage.kv_store import (
    BaseKeyValueStore,
    JsonKeyValueStore,
    SqliteKeyValueStore,
)

if TYPE_CHECKING:
    from gendispatch.config.settings import Settings

DEFAULT_KV_ROOT = "~/.gendispatch/kv"


def create_kv_store(settings: Settings | None = None) -> BaseKeyValueStore:
    """Instantiate the configured key-value backend.

    Args:
        settings: Application settings. Defaults to the JSON backend.

    Returns:
        Configured BaseKeyValueStore implementation.
    """
    backend = "json" if settings is None else settings.kv_backend
    kv_root = DEFAULT_KV_ROOT if settings is None else str(settings.kv_root)

    if backend == "json":
        return JsonKeyValueStore(root=kv_root)

    if backend == "sqlite":
        return SqliteKeyValueStore(db_path=f"{kv_root}/gendispatch_kv.db")

    raise ValueError(f"Unsupported key-value backend: {backend!r}")
