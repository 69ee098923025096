"""Order reference codec — the only link between a processor order and a split member.

Format: ``<splitId>_<memberId>_<nonce>``.

Decoding splits from the right: the last segment is the nonce, the one before
it is the member id, and everything in front (rejoined with the separator) is
the split id. A split id may therefore contain the separator; a member id may
not, and ``encode`` refuses one that does.

Both the order-creation path and the webhook path must go through this module.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass

from splitpay.errors import MalformedReference

SEPARATOR = "_"

_nonce_lock = threading.Lock()
_last_nonce = 0


@dataclass(frozen=True)
class OrderReference:
    """A decoded order reference."""

    split_id: str
    member_id: str
    nonce: str


def next_nonce() -> str:
    """Epoch milliseconds, bumped so that it strictly increases per process."""
    global _last_nonce
    with _nonce_lock:
        now = int(time.time() * 1000)
        _last_nonce = max(now, _last_nonce + 1)
        return str(_last_nonce)


def encode(split_id: str, member_id: str, nonce: str | None = None) -> str:
    """Build an order reference for a (split, member) payment attempt.

    Raises:
        ValueError: if an identifier is empty, or the member id or nonce
            contains the separator (it would not survive decoding)
    """
    if not split_id or not member_id:
        raise ValueError("split_id and member_id are required")
    if SEPARATOR in member_id:
        raise ValueError(f"member_id must not contain {SEPARATOR!r}: {member_id!r}")

    nonce = nonce or next_nonce()
    if SEPARATOR in nonce:
        raise ValueError(f"nonce must not contain {SEPARATOR!r}: {nonce!r}")

    return SEPARATOR.join((split_id, member_id, nonce))


def decode(ref: str) -> OrderReference:
    """Decode an order reference.

    Raises:
        MalformedReference: fewer than 3 segments, or an empty split/member id
    """
    parts = (ref or "").rsplit(SEPARATOR, 2)
    if len(parts) < 3:
        raise MalformedReference(ref or "")

    split_id, member_id, nonce = parts
    if not split_id:
        raise MalformedReference(ref, "empty split id")
    if not member_id:
        raise MalformedReference(ref, "empty member id")

    return OrderReference(split_id=split_id, member_id=member_id, nonce=nonce)
