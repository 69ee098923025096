"""In-memory split store — development and tests.

Holds split documents (not Split objects) so callers never share mutable
state with the store. A single lock guards the check-and-set.
"""

from __future__ import annotations

import copy
import logging
import threading
from typing import Any

from splitpay.errors import SplitNotFound, VersionConflict
from splitpay.models import Member, Split

logger = logging.getLogger(__name__)


class InMemorySplitStore:
    """Thread-safe, versioned split store kept in process memory."""

    def __init__(self) -> None:
        self._docs: dict[str, dict[str, Any]] = {}
        self._orders: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def put(self, split: Split) -> None:
        """Create or replace a split (seeding only; not used by reconciliation)."""
        with self._lock:
            self._docs[split.split_id] = split.to_document()

    def get(self, split_id: str) -> Split:
        with self._lock:
            doc = self._docs.get(split_id)
            if doc is None:
                raise SplitNotFound(split_id)
            doc = copy.deepcopy(doc)
        return Split.from_document(split_id, doc)

    def compare_and_update_members(
        self,
        split_id: str,
        expected_version: int,
        members: list[Member],
    ) -> int:
        with self._lock:
            doc = self._docs.get(split_id)
            if doc is None:
                raise SplitNotFound(split_id)

            current = int(doc.get("version", 0))
            if current != expected_version:
                raise VersionConflict(split_id, expected_version, current)

            doc["members"] = [m.to_document() for m in members]
            doc["version"] = current + 1
            logger.debug("Split %s updated to version %d", split_id, current + 1)
            return current + 1

    def record_order(self, order_id: str, record: dict[str, Any]) -> None:
        with self._lock:
            self._orders[order_id] = copy.deepcopy(record)

    def get_order(self, order_id: str) -> dict[str, Any] | None:
        with self._lock:
            record = self._orders.get(order_id)
            return copy.deepcopy(record) if record is not None else None
