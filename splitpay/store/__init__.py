"""Split store adapters."""

from __future__ import annotations

from splitpay.config import Settings
from splitpay.store.base import OrderLedger, SplitStore
from splitpay.store.memory import InMemorySplitStore
from splitpay.store.redis_store import RedisSplitStore

__all__ = ["InMemorySplitStore", "OrderLedger", "RedisSplitStore", "SplitStore", "build_store"]


def build_store(settings: Settings) -> SplitStore:
    """Build the store backend named in settings."""
    if settings.store_backend == "memory":
        return InMemorySplitStore()
    if settings.store_backend == "redis":
        return RedisSplitStore.from_url(settings.redis_url)
    raise ValueError(f"Unknown store backend: {settings.store_backend!r}")
