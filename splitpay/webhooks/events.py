"""Webhook event parsing — normalizes a processor payload into a PaymentEvent.

Expected payload shape::

    {"event": "PAYMENT.SUCCESS",
     "data": {"payment": {"order_id": "<splitId>_<memberId>_<nonce>",
                          "payment_status": "SUCCESS",
                          "payment_id": "..."}}}

Parsing never raises on missing fields: absent values become empty strings so
the reconciliation engine can classify and reject them with the right outcome.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

SUCCESS_EVENT = "PAYMENT.SUCCESS"
SUCCESS_STATUS = "SUCCESS"


@dataclass
class PaymentEvent:
    """Normalized payment notification."""

    event_type: str
    order_ref: str
    status: str
    payment_id: str
    payment: dict[str, Any] = field(default_factory=dict)
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return self.event_type == SUCCESS_EVENT or self.status == SUCCESS_STATUS


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def parse_event(payload: dict[str, Any]) -> PaymentEvent:
    """Parse a decoded webhook body into a PaymentEvent.

    Args:
        payload: Parsed JSON body from the processor

    Returns:
        PaymentEvent (fields default to "" when absent)
    """
    payload = _as_dict(payload)
    payment = _as_dict(_as_dict(payload.get("data")).get("payment"))

    event = PaymentEvent(
        event_type=_as_str(payload.get("event") or payload.get("type")),
        order_ref=_as_str(payment.get("order_id") or payment.get("orderId")),
        status=_as_str(payment.get("payment_status")).upper(),
        payment_id=_as_str(payment.get("payment_id") or payment.get("cf_payment_id")),
        payment=payment,
        raw=payload,
    )
    logger.debug("Parsed webhook event %s for %s", event.event_type or "no-event", event.order_ref)
    return event
