"""Split store contract used by the reconciliation engine."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from splitpay.models import Member, Split


@runtime_checkable
class SplitStore(Protocol):
    """Narrow interface to a document store of splits.

    Implementations must never overwrite members unconditionally: every write
    is checked against the version the caller read.
    """

    def get(self, split_id: str) -> Split:
        """Fetch a split.

        Raises:
            SplitNotFound: no document for this id
            TransientStoreError: store unreachable
        """
        ...

    def compare_and_update_members(
        self,
        split_id: str,
        expected_version: int,
        members: list[Member],
    ) -> int:
        """Replace the member list only if the split is still at ``expected_version``.

        Returns:
            The new version

        Raises:
            VersionConflict: the split was modified since it was read
            SplitNotFound: no document for this id
            TransientStoreError: store unreachable
        """
        ...


@runtime_checkable
class OrderLedger(Protocol):
    """Records of created processor orders, keyed by order id."""

    def record_order(self, order_id: str, record: dict[str, Any]) -> None:
        """Store the record for an order, replacing any earlier one.

        Raises:
            TransientStoreError: store unreachable
        """
        ...

    def get_order(self, order_id: str) -> dict[str, Any] | None:
        """Return the stored record, or None if the order was never recorded."""
        ...
