"""splitpay service configuration."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Environment-driven settings for the splitpay service.

    Built once at startup (see ``splitpay.serve.create_app``) and passed to
    every collaborator that needs it.
    """

    # Webhook verification
    webhook_secret: str = ""
    # Strict mode rejects every webhook when no secret is configured.
    # Turning it off is a development-only escape hatch and is logged loudly.
    webhook_strict: bool = True
    signature_header: str = "x-webhook-signature"

    # Split store
    store_backend: str = "redis"  # redis, memory
    redis_url: str = "redis://localhost:6379/0"

    # Optimistic-concurrency retry loop
    max_update_attempts: int = 5
    retry_base_delay: float = 0.05
    retry_max_delay: float = 1.0

    paid_by_label: str = "Cashfree"

    # Order creation (Cashfree PG)
    cashfree_app_id: str = ""
    cashfree_secret: str = ""
    cashfree_api_base: str = "https://sandbox.cashfree.com/pg"
    cashfree_api_version: str = "2023-08-01"
    # Public URL of this service, used as the processor's notify_url
    public_base_url: str = "http://localhost:5000"

    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    log_level: str = "INFO"

    model_config = {"env_prefix": "SPLITPAY_", "env_file": ".env", "extra": "ignore"}

    @property
    def webhook_secret_bytes(self) -> bytes:
        return self.webhook_secret.encode("utf-8")

    @property
    def webhook_url(self) -> str:
        return f"{self.public_base_url.rstrip('/')}/webhooks/cashfree"
