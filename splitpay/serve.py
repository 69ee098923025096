"""splitpay FastAPI application.

Run with: uvicorn splitpay.serve:create_app --factory --port 5000
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from splitpay.config import Settings
from splitpay.orders.cashfree import CashfreeClient, register_order_routes
from splitpay.reconciliation import ReconciliationEngine
from splitpay.store import OrderLedger, SplitStore, build_store
from splitpay.webhooks.handlers import register_webhook_routes

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(
    settings: Settings | None = None,
    store: SplitStore | None = None,
    order_client: CashfreeClient | None = None,
) -> FastAPI:
    """Build the app. All collaborators are constructed here or injected."""
    settings = settings or Settings()
    configure_logging(settings.log_level)

    if not settings.webhook_secret:
        if settings.webhook_strict:
            logger.warning("No webhook secret configured: every webhook will be rejected")
        else:
            logger.warning("No webhook secret and strict mode OFF: signatures are NOT verified")

    store = store if store is not None else build_store(settings)
    engine = ReconciliationEngine(
        store,
        paid_by=settings.paid_by_label,
        max_attempts=settings.max_update_attempts,
        base_delay=settings.retry_base_delay,
        max_delay=settings.retry_max_delay,
    )

    app = FastAPI(title="splitpay")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["*"],
    )

    register_webhook_routes(app, settings, engine)
    ledger = store if isinstance(store, OrderLedger) else None
    register_order_routes(app, order_client or CashfreeClient(settings), ledger)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.state.settings = settings
    app.state.store = store
    app.state.engine = engine
    return app
