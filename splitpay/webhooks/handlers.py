"""Webhook HTTP handlers — FastAPI route for processor payment notifications.

The handler:
1. Reads the raw body (HMAC is computed over these exact bytes)
2. Verifies the signature header
3. Parses JSON into a PaymentEvent
4. Runs the reconciliation engine off the event loop
5. Maps the outcome to a response

Response contract:
- 200 {ok: true, note} for ignored / not found / already paid / updated
  (permanently unresolvable events must not trigger processor retries)
- 401 for a bad or missing signature (store is never touched)
- 400 for an undecodable order reference or body
- 500 for transient store failures (processor retries)
"""

from __future__ import annotations

import json
import logging
import time
from collections import Counter

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from splitpay.config import Settings
from splitpay.reconciliation import ReconciliationEngine
from splitpay.webhooks.events import parse_event
from splitpay.webhooks.verification import verify_webhook

logger = logging.getLogger(__name__)

WEBHOOK_PATH = "/webhooks/cashfree"


def _log_webhook(
    counts: Counter,
    event_type: str,
    order_ref: str,
    split_id: str,
    member_id: str,
    status: str,
) -> None:
    """Audit log for webhook activity."""
    counts[status] += 1
    logger.info(
        "WEBHOOK_AUDIT event=%s ref=%s split=%s member=%s status=%s count=%d",
        event_type or "-",
        order_ref or "-",
        split_id or "-",
        member_id or "-",
        status,
        counts[status],
    )


def register_webhook_routes(
    app: FastAPI,
    settings: Settings,
    engine: ReconciliationEngine,
) -> None:
    """Register the payment webhook and its status endpoint."""
    counts: Counter = Counter()

    @app.post(WEBHOOK_PATH)
    async def payment_webhook(request: Request):
        """Receive processor payment notifications (signature-verified)."""
        start = time.time()
        body = await request.body()
        headers = {k.lower(): v for k, v in request.headers.items()}

        if not verify_webhook(settings, body, headers):
            _log_webhook(counts, "", "", "", "", "signature_failed")
            return JSONResponse({"ok": False, "reason": "invalid_signature"}, status_code=401)

        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            _log_webhook(counts, "", "", "", "", "invalid_json")
            return JSONResponse({"ok": False, "note": "invalid_json"}, status_code=400)

        event = parse_event(payload)

        try:
            result = await run_in_threadpool(engine.reconcile, event)
        except Exception:
            logger.exception("Webhook handler failed: event=%s ref=%s", event.event_type, event.order_ref)
            _log_webhook(counts, event.event_type, event.order_ref, "", "", "error")
            return JSONResponse({"ok": False}, status_code=500)

        _log_webhook(
            counts,
            event.event_type,
            event.order_ref,
            result.split_id,
            result.member_id,
            result.note.value,
        )
        logger.debug("Webhook processed in %.1fms", (time.time() - start) * 1000)

        return JSONResponse(
            {"ok": result.ok, "note": result.note.value},
            status_code=result.status_code,
        )

    @app.get("/webhooks/status")
    async def webhook_status():
        """Webhook outcome counts since process start."""
        return {"counts": dict(counts)}

    logger.info("Webhook route registered: %s", WEBHOOK_PATH)
