"""Webhook signature verification — constant-time HMAC-SHA256.

Security contract:
- Signature = lowercase hex HMAC-SHA256 of the exact raw request body
- All comparisons use hmac.compare_digest() (constant-time)
- The body is never re-serialized before hashing (key order / whitespace
  changes would invalidate every signature)
- Missing secret + strict mode -> verification always fails (fail-closed)
- Missing secret + non-strict mode -> bypass, logged on every request
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from typing import Mapping

from splitpay.config import Settings

logger = logging.getLogger(__name__)


def sign(secret: bytes, raw_body: bytes) -> str:
    """Compute the hex HMAC-SHA256 signature for a raw body."""
    return hmac.new(secret, raw_body, hashlib.sha256).hexdigest()


def verify(secret: bytes, raw_body: bytes, presented_signature: str | None) -> bool:
    """Verify a presented signature against the raw request body.

    Args:
        secret: Shared webhook secret
        raw_body: Untouched request body bytes
        presented_signature: Value of the signature header (may be None)

    Returns:
        True only if the signature is present and matches
    """
    if not secret or not presented_signature:
        return False

    computed = sign(secret, raw_body)
    return hmac.compare_digest(
        computed.encode("ascii"),
        presented_signature.encode("utf-8"),
    )


def verify_webhook(settings: Settings, raw_body: bytes, headers: Mapping[str, str]) -> bool:
    """Apply the configured verification policy to an inbound webhook.

    Args:
        settings: Service settings (secret, strict flag, header name)
        raw_body: Raw request body
        headers: Request headers (lowercase keys)

    Returns:
        True if the request should be processed
    """
    signature = headers.get(settings.signature_header.lower())

    if not settings.webhook_secret:
        if settings.webhook_strict:
            logger.warning("Webhook secret not configured — rejecting webhook (strict mode)")
            return False
        logger.warning(
            "Webhook secret not configured and strict mode is off — "
            "signature verification BYPASSED"
        )
        return True

    return verify(settings.webhook_secret_bytes, raw_body, signature)
