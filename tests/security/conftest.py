"""HTTP-level fixtures.

Responsibilities:
- Creates the FastAPI `app` with an in-memory split store and a stub
  order client (no Redis, no processor network calls)
- Wraps it in a TestClient
- Provides a `signed_post` helper that signs the exact bytes it sends
"""

from __future__ import annotations

import hashlib
import hmac
import json
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from splitpay.serve import create_app


@pytest.fixture
def store_spy(store):
    """The seeded in-memory store, wrapped so tests can assert on access."""
    return MagicMock(wraps=store)


@pytest.fixture
def order_client():
    return MagicMock()


@pytest.fixture
def app(settings, store_spy, order_client):
    return create_app(settings=settings, store=store_spy, order_client=order_client)


@pytest.fixture
def client(app):
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c


@pytest.fixture
def signed_post(client, settings):
    """POST a payload to the webhook, signed over the exact body bytes."""

    def _post(payload, *, secret: str | None = None, signature: str | None = None, path: str = "/webhooks/cashfree"):
        body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
        if signature is None:
            key = (secret if secret is not None else settings.webhook_secret).encode()
            signature = hmac.new(key, body, hashlib.sha256).hexdigest()
        return client.post(
            path,
            content=body,
            headers={"x-webhook-signature": signature, "Content-Type": "application/json"},
        )

    return _post


@pytest.fixture
def success_event():
    """Processor success notification factory."""

    def _make(order_id: str = "S1_M1_1000", payment_id: str = "CF_TEST_123") -> dict:
        return {
            "event": "PAYMENT.SUCCESS",
            "data": {
                "payment": {
                    "order_id": order_id,
                    "payment_status": "SUCCESS",
                    "payment_id": payment_id,
                }
            },
        }

    return _make
