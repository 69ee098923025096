"""Cashfree order creation — starts a payment attempt for one split member.

The order id is built with the order reference codec, so the webhook path can
decode it back into (split, member). The processor is told to notify this
service's webhook endpoint.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from splitpay.config import Settings
from splitpay.errors import OrderCreationError, StoreError
from splitpay.orders.reference import encode
from splitpay.store.base import OrderLedger
from splitpay.tools.retry import send_order_request

logger = logging.getLogger(__name__)

_CURRENCY = "INR"
_DEFAULT_EMAIL = "test@example.com"
_DEFAULT_PHONE = "9999999999"


@dataclass
class CreatedOrder:
    """Processor response for a created order plus our reference."""

    order_id: str
    response: dict[str, Any]


class CashfreeClient:
    """Thin client for the Cashfree PG ``/orders`` API."""

    def __init__(self, settings: Settings, http: httpx.Client | None = None):
        self._settings = settings
        self._http = http or httpx.Client(timeout=15.0)

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-client-id": self._settings.cashfree_app_id,
            "x-client-secret": self._settings.cashfree_secret,
            "x-api-version": self._settings.cashfree_api_version,
        }

    def build_payload(
        self,
        amount: float,
        order_id: str,
        customer: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        customer = customer or {}
        return {
            "order_id": order_id,
            "order_amount": float(amount),
            "order_currency": _CURRENCY,
            "customer_details": {
                "customer_id": str(customer.get("id") or f"cust_{order_id.rsplit('_', 1)[-1]}"),
                "customer_email": customer.get("email") or _DEFAULT_EMAIL,
                "customer_phone": customer.get("phone") or _DEFAULT_PHONE,
            },
            "order_meta": {"notify_url": self._settings.webhook_url},
            "order_note": f"order:{order_id}",
        }

    def _post_order(self, payload: dict[str, Any]) -> httpx.Response:
        url = f"{self._settings.cashfree_api_base.rstrip('/')}/orders"
        return self._http.post(url, json=payload, headers=self._headers())

    def create_order(
        self,
        amount: float,
        split_id: str,
        member_id: str,
        customer: dict[str, Any] | None = None,
    ) -> CreatedOrder:
        """Create a processor order for one member's share.

        Raises:
            ValueError: invalid amount or identifiers
            OrderCreationError: the processor call failed
        """
        if float(amount) <= 0:
            raise ValueError("amount must be positive")
        order_id = encode(split_id, member_id)
        payload = self.build_payload(amount, order_id, customer)

        logger.info("Creating order: order_id=%s amount=%s", order_id, payload["order_amount"])
        resp = send_order_request(lambda: self._post_order(payload), order_id=order_id)
        try:
            response = resp.json()
        except ValueError as e:
            raise OrderCreationError(
                f"Processor returned a non-JSON body for order {order_id}",
                details={"order_id": order_id, "status": resp.status_code, "detail": resp.text[:500]},
            ) from e

        return CreatedOrder(order_id=order_id, response=response)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def register_order_routes(
    app: FastAPI,
    client: CashfreeClient,
    ledger: OrderLedger | None = None,
    clock: Callable[[], str] = _utc_now,
) -> None:
    """Register ``POST /create-order`` on the app.

    When a ledger is given, each created order is recorded under its order id
    (split, member, processor response, creation time). The record is
    best-effort: a failed write is logged and the order is still returned.
    """

    @app.post("/create-order")
    async def create_order(request: Request):
        """Start a payment for one split member."""
        try:
            body = await request.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            return JSONResponse({"ok": False, "error": "missing_params"}, status_code=400)

        amount = body.get("amount")
        split_id = body.get("splitId")
        member_id = body.get("memberId")
        if not amount or not split_id or not member_id:
            return JSONResponse({"ok": False, "error": "missing_params"}, status_code=400)

        try:
            order = await run_in_threadpool(
                client.create_order,
                amount,
                str(split_id),
                str(member_id),
                body.get("customer") or {},
            )
        except (ValueError, TypeError):
            return JSONResponse({"ok": False, "error": "invalid_params"}, status_code=400)
        except OrderCreationError as e:
            return JSONResponse(
                {"ok": False, "error": "create_order_failed", "detail": e.details.get("detail")},
                status_code=500,
            )

        if ledger is not None:
            record = {
                "splitId": str(split_id),
                "memberId": str(member_id),
                "orderResp": order.response,
                "createdAt": clock(),
            }
            try:
                await run_in_threadpool(ledger.record_order, order.order_id, record)
            except StoreError:
                logger.warning("Could not record order %s; continuing", order.order_id, exc_info=True)

        return {"ok": True, "order": order.response, "receipt": order.order_id}
