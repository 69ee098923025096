"""Operator CLI for inspecting splits and exercising the webhook.

Usage:
    python -m splitpay.cli show-split SPLIT_ID
    python -m splitpay.cli sign body.json
    python -m splitpay.cli send-webhook SPLIT_MEMBER_12345 --url http://localhost:5000/webhooks/cashfree
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

import httpx

from splitpay.config import Settings
from splitpay.errors import SplitNotFound, TransientStoreError
from splitpay.store import build_store
from splitpay.webhooks.verification import sign


def build_event(order_id: str, status: str = "SUCCESS", payment_id: str = "CF_TEST_123") -> dict:
    """A processor-shaped payment notification for local testing."""
    return {
        "event": f"PAYMENT.{status}",
        "data": {
            "payment": {
                "order_id": order_id,
                "payment_status": status,
                "payment_id": payment_id,
            }
        },
    }


def cmd_show_split(args: argparse.Namespace, settings: Settings) -> int:
    """Print a split document."""
    store = build_store(settings)
    try:
        split = store.get(args.split_id)
    except SplitNotFound:
        print(f"No split doc found for id: {args.split_id}")
        return 0
    except TransientStoreError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1

    print(json.dumps({"id": split.split_id, **split.to_document()}, indent=2, default=str))
    return 0


def cmd_sign(args: argparse.Namespace, settings: Settings) -> int:
    """Print the signature for a raw body file."""
    path = Path(args.body_file)
    if not path.exists():
        print(f"ERROR: body file not found: {path}", file=sys.stderr)
        return 1
    print(sign(settings.webhook_secret_bytes, path.read_bytes()))
    return 0


def cmd_send_webhook(args: argparse.Namespace, settings: Settings) -> int:
    """Sign and deliver a test payment notification."""
    url = args.url or settings.webhook_url
    # Sign exactly the bytes that go on the wire
    raw = json.dumps(build_event(args.order_id, args.status.upper(), args.payment_id)).encode("utf-8")
    headers = {
        "Content-Type": "application/json",
        settings.signature_header: sign(settings.webhook_secret_bytes, raw),
    }
    try:
        resp = httpx.post(url, content=raw, headers=headers, timeout=15.0)
    except httpx.HTTPError as e:
        print(f"Send webhook failed: {e}", file=sys.stderr)
        return 1

    print(f"Webhook delivered. status: {resp.status_code} {resp.text}")
    return 0 if resp.status_code < 400 else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="splitpay", description="splitpay operator tools")
    sub = parser.add_subparsers(dest="command", required=True)

    p_show = sub.add_parser("show-split", help="Print a split document")
    p_show.add_argument("split_id")
    p_show.set_defaults(func=cmd_show_split)

    p_sign = sub.add_parser("sign", help="Print the webhook signature of a body file")
    p_sign.add_argument("body_file")
    p_sign.set_defaults(func=cmd_sign)

    p_send = sub.add_parser("send-webhook", help="Send a signed test webhook")
    p_send.add_argument("order_id")
    p_send.add_argument("--url", default=None, help="Webhook URL (default: configured endpoint)")
    p_send.add_argument("--status", default="SUCCESS")
    p_send.add_argument("--payment-id", default="CF_TEST_123")
    p_send.set_defaults(func=cmd_send_webhook)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args, Settings())


if __name__ == "__main__":
    sys.exit(main())
