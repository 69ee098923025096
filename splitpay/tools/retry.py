"""Backoff for the two places splitpay retries.

- compute_delay: jittered exponential delay between version-conflict
  attempts in the reconciliation engine
- send_order_request: one processor order call, retried on 429/5xx and
  transport errors; anything it cannot recover from is an OrderCreationError
"""

from __future__ import annotations

import logging
import random
import time
from typing import Callable

import httpx

from splitpay.errors import OrderCreationError

logger = logging.getLogger(__name__)

# Processor answers worth another attempt with the same order id
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

_DETAIL_LIMIT = 500


def compute_delay(attempt: int, base_delay: float, max_delay: float, jitter: float = 0.3) -> float:
    """Delay before retry number ``attempt`` (0-based): base * 2^attempt, capped, +/- jitter."""
    delay = min(base_delay * (2**attempt), max_delay)
    jitter_amount = delay * jitter
    delay += random.uniform(-jitter_amount, jitter_amount)
    return max(0.0, delay)


def _retry_after(response: httpx.Response, max_delay: float) -> float | None:
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return min(max(float(value), 0.0), max_delay)
    except ValueError:
        return None


def send_order_request(
    send: Callable[[], httpx.Response],
    *,
    order_id: str,
    max_retries: int = 2,
    base_delay: float = 0.5,
    max_delay: float = 5.0,
) -> httpx.Response:
    """Call the processor, retrying transient failures.

    Args:
        send: Performs one HTTP request and returns the response
        order_id: Order reference, for logs and error details
        max_retries: Retries after the first attempt
        base_delay: Initial delay in seconds
        max_delay: Delay cap in seconds (also caps Retry-After)

    Returns:
        The first 2xx response

    Raises:
        OrderCreationError: non-retryable status, or retries exhausted.
            ``details`` carries order_id, attempts, and status/detail when the
            processor answered.
    """
    attempts = max_retries + 1
    for attempt in range(attempts):
        last = attempt == max_retries
        try:
            response = send()
        except httpx.TransportError as e:
            if last:
                logger.error("Processor unreachable: order_id=%s (%s)", order_id, type(e).__name__)
                raise OrderCreationError(
                    f"Processor unreachable for order {order_id}",
                    details={"order_id": order_id, "attempts": attempts, "detail": str(e)},
                ) from e
            delay = compute_delay(attempt, base_delay, max_delay)
            logger.warning(
                "Order %s: %s on attempt %d/%d, retrying in %.1fs",
                order_id, type(e).__name__, attempt + 1, attempts, delay,
            )
            time.sleep(delay)
            continue

        status = response.status_code
        if response.is_success:
            return response

        if status not in RETRYABLE_STATUS_CODES or last:
            logger.error("Order creation rejected: order_id=%s status=%d", order_id, status)
            raise OrderCreationError(
                f"Processor rejected order {order_id}",
                details={
                    "order_id": order_id,
                    "attempts": attempt + 1,
                    "status": status,
                    "detail": response.text[:_DETAIL_LIMIT],
                },
            )

        delay = _retry_after(response, max_delay)
        if delay is None:
            delay = compute_delay(attempt, base_delay, max_delay)
        logger.warning(
            "Order %s: HTTP %d on attempt %d/%d, retrying in %.1fs",
            order_id, status, attempt + 1, attempts, delay,
        )
        time.sleep(delay)

    raise AssertionError("retry loop exited without a result")  # pragma: no cover
