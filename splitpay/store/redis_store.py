"""Redis-backed split store with optimistic concurrency.

Storage layout:
- Key pattern: split:{split_id}
- Value: JSON split document with an integer "version" field
- Order records: payment:{order_id}, JSON, one per created order

Conditional update uses WATCH/MULTI/EXEC: the key is watched, the stored
version is compared with the caller's, and the new document is written in a
transaction that Redis aborts if anyone touched the key in between.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import redis

from splitpay.errors import SplitNotFound, StoreError, TransientStoreError, VersionConflict
from splitpay.models import Member, Split

logger = logging.getLogger(__name__)

_KEY_PREFIX = "split"
_ORDER_PREFIX = "payment"

# Connection-level failures that are worth a processor retry
_TRANSIENT_ERRORS = (redis.ConnectionError, redis.TimeoutError)


def _key(split_id: str) -> str:
    return f"{_KEY_PREFIX}:{split_id}"


def _load(split_id: str, raw: str | None) -> dict[str, Any]:
    if raw is None:
        raise SplitNotFound(split_id)
    try:
        doc = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise StoreError(f"Split {split_id!r} is not valid JSON", details={"split_id": split_id}) from e
    if not isinstance(doc, dict):
        raise StoreError(f"Split {split_id!r} is not a document", details={"split_id": split_id})
    return doc


class RedisSplitStore:
    """Split store on a Redis string key per split."""

    def __init__(self, client: redis.Redis):
        self._redis = client

    @classmethod
    def from_url(cls, redis_url: str) -> RedisSplitStore:
        return cls(redis.from_url(redis_url, decode_responses=True))

    def put(self, split: Split) -> None:
        """Create or replace a split (seeding / tooling only)."""
        try:
            self._redis.set(_key(split.split_id), json.dumps(split.to_document(), default=str))
        except _TRANSIENT_ERRORS as e:
            raise TransientStoreError(f"Redis unavailable writing split {split.split_id!r}") from e

    def get(self, split_id: str) -> Split:
        try:
            raw = self._redis.get(_key(split_id))
        except _TRANSIENT_ERRORS as e:
            raise TransientStoreError(f"Redis unavailable reading split {split_id!r}") from e
        return Split.from_document(split_id, _load(split_id, raw))

    def compare_and_update_members(
        self,
        split_id: str,
        expected_version: int,
        members: list[Member],
    ) -> int:
        key = _key(split_id)
        try:
            with self._redis.pipeline() as pipe:
                pipe.watch(key)
                doc = _load(split_id, pipe.get(key))

                current = int(doc.get("version", 0))
                if current != expected_version:
                    raise VersionConflict(split_id, expected_version, current)

                doc["members"] = [m.to_document() for m in members]
                doc["version"] = current + 1

                pipe.multi()
                pipe.set(key, json.dumps(doc, default=str))
                pipe.execute()
        except redis.WatchError as e:
            # Key changed between WATCH and EXEC
            raise VersionConflict(split_id, expected_version) from e
        except _TRANSIENT_ERRORS as e:
            raise TransientStoreError(f"Redis unavailable updating split {split_id!r}") from e

        logger.debug("Split %s updated to version %d", split_id, current + 1)
        return current + 1

    def record_order(self, order_id: str, record: dict[str, Any]) -> None:
        try:
            self._redis.set(f"{_ORDER_PREFIX}:{order_id}", json.dumps(record, default=str))
        except _TRANSIENT_ERRORS as e:
            raise TransientStoreError(f"Redis unavailable recording order {order_id!r}") from e

    def get_order(self, order_id: str) -> dict[str, Any] | None:
        try:
            raw = self._redis.get(f"{_ORDER_PREFIX}:{order_id}")
        except _TRANSIENT_ERRORS as e:
            raise TransientStoreError(f"Redis unavailable reading order {order_id!r}") from e
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError) as e:
            raise StoreError(f"Order record {order_id!r} is not valid JSON", details={"order_id": order_id}) from e
