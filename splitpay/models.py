"""Split and member data models.

A split document in the store looks like::

    {
        "version": 3,
        "title": "Dinner",
        "members": [
            {"id": "m1", "name": "Asha", "paid": true,
             "paidAt": "...", "paidBy": "Cashfree", "paymentInfo": {...}},
            {"id": "m2", "name": "Ravi", "paid": false}
        ]
    }

Fields the core does not understand are kept in ``extra`` and written back
untouched.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field, replace
from typing import Any

# Keys owned by the model; everything else round-trips through ``extra``
_MEMBER_KEYS = {"id", "paid", "paidAt", "paidBy", "paymentInfo"}
_SPLIT_KEYS = {"members", "version"}
_TRUE_STRINGS = {"true", "1", "yes"}


def _as_paid(value: Any) -> bool:
    """Read a stored ``paid`` flag. Only real truthy markers count as paid."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    if isinstance(value, (int, float)):
        return bool(value)
    return False


@dataclass(frozen=True)
class Member:
    """One participant's share within a split.

    A member read from the store keeps its stored entry in ``raw``, and
    ``to_document`` writes that entry back as-is. Stored values that the
    model normalizes (a numeric ``id``, a string ``paid``) are therefore never
    rewritten unless the member itself is marked paid.
    """

    id: str
    paid: bool = False
    paid_at: str | None = None
    paid_by: str | None = None
    payment_info: dict[str, Any] | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] | None = field(default=None, compare=False, repr=False)

    @classmethod
    def from_document(cls, doc: dict[str, Any]) -> Member:
        return cls(
            id=str(doc.get("id", "")),
            paid=_as_paid(doc.get("paid", False)),
            paid_at=doc.get("paidAt"),
            paid_by=doc.get("paidBy"),
            payment_info=doc.get("paymentInfo"),
            extra={k: v for k, v in doc.items() if k not in _MEMBER_KEYS},
            raw=copy.deepcopy(doc),
        )

    def to_document(self) -> dict[str, Any]:
        if self.raw is not None:
            return copy.deepcopy(self.raw)
        doc: dict[str, Any] = dict(self.extra)
        doc["id"] = self.id
        doc["paid"] = self.paid
        if self.paid_at is not None:
            doc["paidAt"] = self.paid_at
        if self.paid_by is not None:
            doc["paidBy"] = self.paid_by
        if self.payment_info is not None:
            doc["paymentInfo"] = copy.deepcopy(self.payment_info)
        return doc


@dataclass
class Split:
    """A shared-expense record with its members and concurrency version."""

    split_id: str
    members: list[Member] = field(default_factory=list)
    version: int = 0
    extra: dict[str, Any] = field(default_factory=dict)

    def find_member(self, member_id: str) -> Member | None:
        """Exact match on member id. No prefix or substring fallback."""
        for member in self.members:
            if member.id == member_id:
                return member
        return None

    @classmethod
    def from_document(cls, split_id: str, doc: dict[str, Any]) -> Split:
        members = doc.get("members") or []
        return cls(
            split_id=split_id,
            members=[Member.from_document(m) for m in members if isinstance(m, dict)],
            version=int(doc.get("version", 0)),
            extra={k: v for k, v in doc.items() if k not in _SPLIT_KEYS},
        )

    def to_document(self) -> dict[str, Any]:
        doc: dict[str, Any] = copy.deepcopy(self.extra)
        doc["members"] = [m.to_document() for m in self.members]
        doc["version"] = self.version
        return doc


def mark_paid(
    member: Member,
    *,
    paid_by: str,
    payment_info: dict[str, Any] | None,
    paid_at: str,
) -> Member:
    """Return the paid version of a member.

    A member that is already paid is returned unchanged: paid never flips back
    and the first payment_info is never overwritten.
    """
    if member.paid:
        return member
    info = copy.deepcopy(payment_info) if payment_info is not None else None
    raw = None
    if member.raw is not None:
        # Stored id and unknown keys stay as they were; only the payment keys change
        raw = copy.deepcopy(member.raw)
        raw["paid"] = True
        raw["paidAt"] = paid_at
        raw["paidBy"] = paid_by
        if info is not None:
            raw["paymentInfo"] = copy.deepcopy(info)
        else:
            raw.pop("paymentInfo", None)
    return replace(
        member,
        paid=True,
        paid_at=paid_at,
        paid_by=paid_by,
        payment_info=info,
        raw=raw,
    )


def replace_member(members: list[Member], updated: Member) -> list[Member]:
    """New member list with the entry matching ``updated.id`` swapped in."""
    return [updated if m.id == updated.id else m for m in members]
