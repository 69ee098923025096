"""Reconciliation engine — applies a verified payment event to a split member.

Per (split, member) the state is UNPAID -> PAID (terminal). One event is
handled as:

1. Non-success event           -> ignored_event, store untouched
2. Undecodable order reference -> bad_request, store untouched
3. Split missing               -> split_not_found (acknowledged)
4. Member missing (exact id)   -> no_member (acknowledged)
5. Member already paid         -> already_paid, no write
6. Conditional update; on VersionConflict re-read and retry from 4, bounded
7. Write applied               -> member_updated

Exactly one member is written per successful event and nothing is written on
any other branch. Retries exhausted or store unreachable -> store_unavailable
(500, the processor retries the delivery).
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable

from splitpay.errors import (
    MalformedReference,
    SplitNotFound,
    StoreError,
    TransientStoreError,
    VersionConflict,
)
from splitpay.models import mark_paid, replace_member
from splitpay.orders.reference import decode
from splitpay.store.base import SplitStore
from splitpay.tools.retry import compute_delay
from splitpay.webhooks.events import PaymentEvent

logger = logging.getLogger(__name__)

_DEFAULT_MAX_ATTEMPTS = 5
_DEFAULT_BASE_DELAY = 0.05
_DEFAULT_MAX_DELAY = 1.0


class Note(str, Enum):
    """Outcome of reconciling one webhook event."""
    IGNORED = "ignored_event"
    BAD_REQUEST = "bad_request"
    SPLIT_NOT_FOUND = "split_not_found"
    NO_MEMBER = "no_member"
    ALREADY_PAID = "already_paid"
    MEMBER_UPDATED = "member_updated"
    STORE_UNAVAILABLE = "store_unavailable"


_STATUS_CODES = {
    Note.BAD_REQUEST: 400,
    Note.STORE_UNAVAILABLE: 500,
}


@dataclass
class ReconcileResult:
    """What happened to one event, and how to answer the processor."""

    note: Note
    split_id: str = ""
    member_id: str = ""
    attempts: int = 0

    @property
    def status_code(self) -> int:
        return _STATUS_CODES.get(self.note, 200)

    @property
    def ok(self) -> bool:
        return self.status_code == 200


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ReconciliationEngine:
    """Idempotent, race-safe member-paid transitions driven by webhook events."""

    def __init__(
        self,
        store: SplitStore,
        *,
        paid_by: str = "Cashfree",
        max_attempts: int = _DEFAULT_MAX_ATTEMPTS,
        base_delay: float = _DEFAULT_BASE_DELAY,
        max_delay: float = _DEFAULT_MAX_DELAY,
        clock: Callable[[], str] = _utc_now,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._store = store
        self._paid_by = paid_by
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._clock = clock
        self._sleep = sleep

    def reconcile(self, event: PaymentEvent) -> ReconcileResult:
        """Apply one (already signature-verified) event."""
        if not event.is_success:
            logger.info(
                "Ignoring non-success event: event=%s status=%s ref=%s",
                event.event_type or "-", event.status or "-", event.order_ref,
            )
            return ReconcileResult(Note.IGNORED)

        try:
            ref = decode(event.order_ref)
        except MalformedReference as e:
            logger.warning(
                "Malformed order reference %r (event=%s): %s",
                event.order_ref, event.event_type, e.details.get("reason"),
            )
            return ReconcileResult(Note.BAD_REQUEST)

        try:
            return self._apply(event, ref.split_id, ref.member_id)
        except StoreError:
            logger.exception(
                "Store failure reconciling split=%s member=%s", ref.split_id, ref.member_id
            )
            return ReconcileResult(Note.STORE_UNAVAILABLE, ref.split_id, ref.member_id)

    def _apply(self, event: PaymentEvent, split_id: str, member_id: str) -> ReconcileResult:
        try:
            split = self._store.get(split_id)
        except SplitNotFound:
            logger.warning("Split not found: split=%s member=%s", split_id, member_id)
            return ReconcileResult(Note.SPLIT_NOT_FOUND, split_id, member_id)

        for attempt in range(1, self._max_attempts + 1):
            member = split.find_member(member_id)
            if member is None:
                logger.warning("Member not found: split=%s member=%s", split_id, member_id)
                return ReconcileResult(Note.NO_MEMBER, split_id, member_id, attempt)

            if member.paid:
                logger.info(
                    "Member already paid: split=%s member=%s payment=%s",
                    split_id, member_id, event.payment_id or "-",
                )
                return ReconcileResult(Note.ALREADY_PAID, split_id, member_id, attempt)

            updated = mark_paid(
                member,
                paid_by=self._paid_by,
                payment_info=event.payment,
                paid_at=self._clock(),
            )
            try:
                version = self._store.compare_and_update_members(
                    split_id, split.version, replace_member(split.members, updated)
                )
            except SplitNotFound:
                logger.warning("Split vanished before update: split=%s member=%s", split_id, member_id)
                return ReconcileResult(Note.SPLIT_NOT_FOUND, split_id, member_id, attempt)
            except VersionConflict:
                if attempt == self._max_attempts:
                    break
                delay = compute_delay(attempt - 1, self._base_delay, self._max_delay)
                logger.info(
                    "Version conflict on split=%s member=%s (attempt %d/%d), retrying in %.3fs",
                    split_id, member_id, attempt, self._max_attempts, delay,
                )
                self._sleep(delay)
                try:
                    split = self._store.get(split_id)
                except SplitNotFound:
                    logger.warning("Split vanished during retry: split=%s", split_id)
                    return ReconcileResult(Note.SPLIT_NOT_FOUND, split_id, member_id, attempt)
                continue

            logger.info(
                "Marked member paid: split=%s member=%s payment=%s version=%d",
                split_id, member_id, event.payment_id or "-", version,
            )
            return ReconcileResult(Note.MEMBER_UPDATED, split_id, member_id, attempt)

        raise TransientStoreError(
            f"Gave up updating split {split_id!r} after {self._max_attempts} conflicting attempts",
            details={"split_id": split_id, "member_id": member_id},
        )
