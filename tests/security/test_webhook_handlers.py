"""Webhook handler integration tests.

Verifies the full HTTP request flow through the payment webhook:
- Signature verification over raw bytes (401, store never touched)
- Response codes per outcome (200 / 400 / 500)
- Duplicate delivery is acknowledged without a second write
- No internal details in error responses
"""

from __future__ import annotations

import json
import logging

from splitpay.errors import TransientStoreError


class TestScenarios:
    """Documented webhook scenarios over HTTP."""

    def test_success_marks_member_paid(self, signed_post, success_event, store):
        """Scenario A."""
        resp = signed_post(success_event("S1_M1_1000"))
        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "note": "member_updated"}
        assert store.get("S1").find_member("M1").paid is True

    def test_redelivery_already_paid(self, signed_post, success_event, store_spy):
        """Scenario B."""
        signed_post(success_event("S1_M1_1000"))
        store_spy.compare_and_update_members.reset_mock()

        resp = signed_post(success_event("S1_M1_1000"))
        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "note": "already_paid"}
        store_spy.compare_and_update_members.assert_not_called()

    def test_unknown_member(self, signed_post, success_event, store_spy):
        """Scenario C."""
        resp = signed_post(success_event("S1_MUNKNOWN_1000"))
        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "note": "no_member"}
        store_spy.compare_and_update_members.assert_not_called()

    def test_bad_signature(self, signed_post, success_event, store_spy):
        """Scenario D: wrong signature."""
        resp = signed_post(success_event(), signature="0" * 64)
        assert resp.status_code == 401
        assert resp.json() == {"ok": False, "reason": "invalid_signature"}
        store_spy.get.assert_not_called()

    def test_missing_signature(self, client, success_event, store_spy):
        """Scenario D: no signature header."""
        resp = client.post(
            "/webhooks/cashfree",
            content=json.dumps(success_event()).encode(),
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 401
        store_spy.get.assert_not_called()

    def test_wrong_secret(self, signed_post, success_event, store_spy):
        resp = signed_post(success_event(), secret="attacker-secret")
        assert resp.status_code == 401
        store_spy.get.assert_not_called()

    def test_malformed_reference(self, signed_post, success_event, store_spy):
        """Scenario E."""
        resp = signed_post(success_event("S1"))
        assert resp.status_code == 400
        assert resp.json() == {"ok": False, "note": "bad_request"}
        store_spy.get.assert_not_called()


class TestRawBodyHandling:
    def test_signature_over_exact_bytes(self, signed_post, store):
        """Unusual whitespace/key order must verify as sent."""
        body = (
            b'{ "data" : {"payment": {"payment_id":"CF_9",  "payment_status":"SUCCESS",'
            b' "order_id":"S1_M2_77"}},\n  "event":"PAYMENT.SUCCESS" }'
        )
        resp = signed_post(body)
        assert resp.status_code == 200
        assert resp.json()["note"] == "member_updated"
        assert store.get("S1").find_member("M2").payment_info["payment_id"] == "CF_9"

    def test_body_tampered_after_signing(self, client, settings, success_event):
        import hashlib
        import hmac

        body = json.dumps(success_event("S1_M1_1000")).encode()
        sig = hmac.new(settings.webhook_secret.encode(), body, hashlib.sha256).hexdigest()
        tampered = body.replace(b"M1", b"M2")
        resp = client.post("/webhooks/cashfree", content=tampered, headers={"x-webhook-signature": sig})
        assert resp.status_code == 401

    def test_invalid_json_after_valid_signature(self, signed_post, store_spy):
        resp = signed_post(b"not json {")
        assert resp.status_code == 400
        assert resp.json() == {"ok": False, "note": "invalid_json"}
        store_spy.get.assert_not_called()


class TestOtherOutcomes:
    def test_non_success_event_ignored(self, signed_post, store_spy):
        payload = {
            "event": "PAYMENT.FAILED",
            "data": {"payment": {"order_id": "S1_M1_1000", "payment_status": "FAILED"}},
        }
        resp = signed_post(payload)
        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "note": "ignored_event"}
        store_spy.get.assert_not_called()

    def test_split_not_found(self, signed_post, success_event):
        resp = signed_post(success_event("S404_M1_1000"))
        assert resp.status_code == 200
        assert resp.json() == {"ok": True, "note": "split_not_found"}

    def test_store_unavailable_returns_500(self, signed_post, success_event, store_spy):
        store_spy.get.side_effect = TransientStoreError("redis down")
        resp = signed_post(success_event())
        assert resp.status_code == 500
        assert resp.json() == {"ok": False, "note": "store_unavailable"}
        assert "redis" not in resp.text

    def test_unexpected_error_returns_bare_500(self, signed_post, success_event, store_spy):
        store_spy.get.side_effect = RuntimeError("boom: internal detail")
        resp = signed_post(success_event())
        assert resp.status_code == 500
        assert resp.json() == {"ok": False}
        assert "internal detail" not in resp.text

    def test_audit_log_line(self, signed_post, success_event, caplog):
        with caplog.at_level(logging.INFO, logger="splitpay.webhooks.handlers"):
            signed_post(success_event("S1_M1_1000"))
        audit = [r.getMessage() for r in caplog.records if "WEBHOOK_AUDIT" in r.getMessage()]
        assert len(audit) == 1
        assert "split=S1" in audit[0]
        assert "member=M1" in audit[0]
        assert "status=member_updated" in audit[0]

    def test_status_counts(self, client, signed_post, success_event):
        signed_post(success_event("S1_M1_1000"))
        signed_post(success_event("S1_M1_1000"))
        signed_post(success_event(), signature="bad")
        counts = client.get("/webhooks/status").json()["counts"]
        assert counts == {"member_updated": 1, "already_paid": 1, "signature_failed": 1}

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "ok"}


class TestNonStrictMode:
    def test_no_secret_non_strict_processes_unsigned(self, store, success_event):
        from fastapi.testclient import TestClient

        from splitpay.config import Settings
        from splitpay.serve import create_app

        app = create_app(
            settings=Settings(webhook_secret="", webhook_strict=False, store_backend="memory"),
            store=store,
        )
        with TestClient(app) as c:
            resp = c.post("/webhooks/cashfree", content=json.dumps(success_event()).encode())
        assert resp.status_code == 200
        assert resp.json()["note"] == "member_updated"

    def test_no_secret_strict_rejects(self, store, success_event):
        from fastapi.testclient import TestClient

        from splitpay.config import Settings
        from splitpay.serve import create_app

        app = create_app(settings=Settings(webhook_secret="", store_backend="memory"), store=store)
        with TestClient(app) as c:
            resp = c.post(
                "/webhooks/cashfree",
                content=json.dumps(success_event()).encode(),
                headers={"x-webhook-signature": "anything"},
            )
        assert resp.status_code == 401
