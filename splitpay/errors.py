"""Exception hierarchy for webhook ingestion and split reconciliation.

Taxonomy (maps 1:1 onto webhook responses):
- AuthError           -> 401, never retried by us
- MalformedReference  -> 400, permanent
- NotFound            -> 200 acknowledged, permanent
- VersionConflict     -> recovered locally by bounded retry
- TransientStoreError -> 500, processor should retry
"""

from __future__ import annotations

from typing import Any


class SplitPayError(Exception):
    """Base exception for all splitpay errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class AuthError(SplitPayError):
    """Raised when a webhook signature is missing or does not match."""


class DecodeError(SplitPayError):
    """Raised when an order reference cannot be decoded."""


class MalformedReference(DecodeError):
    """Order reference has too few segments or an empty identifier."""

    def __init__(self, reference: str, reason: str = "too few segments") -> None:
        super().__init__(
            f"Malformed order reference {reference!r}: {reason}",
            details={"reference": reference, "reason": reason},
        )
        self.reference = reference


class StoreError(SplitPayError):
    """Base exception for split store failures."""


class NotFound(StoreError):
    """Raised when a split (or member) does not exist."""


class SplitNotFound(NotFound):
    """Raised when no split document exists for the id."""

    def __init__(self, split_id: str) -> None:
        super().__init__(f"Split {split_id!r} not found", details={"split_id": split_id})
        self.split_id = split_id


class VersionConflict(StoreError):
    """Raised when a conditional update sees a newer version than expected."""

    def __init__(
        self,
        split_id: str,
        expected_version: int,
        current_version: int | None = None,
    ) -> None:
        super().__init__(
            f"Split {split_id!r} has been modified "
            f"(expected version {expected_version}, found {current_version})",
            details={
                "split_id": split_id,
                "expected_version": expected_version,
                "current_version": current_version,
            },
        )
        self.split_id = split_id
        self.expected_version = expected_version
        self.current_version = current_version


class TransientStoreError(StoreError):
    """Store unreachable, or conflicts persisted past the retry budget."""


class OrderCreationError(SplitPayError):
    """Raised when the payment processor rejects or fails an order request."""
