"""Shared fixtures for the splitpay test suite."""

from __future__ import annotations

import pytest

from splitpay.config import Settings
from splitpay.models import Member, Split
from splitpay.store.memory import InMemorySplitStore

WEBHOOK_SECRET = "test-secret"


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        webhook_secret=WEBHOOK_SECRET,
        webhook_strict=True,
        store_backend="memory",
        retry_base_delay=0.0,
        retry_max_delay=0.0,
        public_base_url="https://splitpay.example.com",
        cashfree_app_id="app-id",
        cashfree_secret="app-secret",
    )


@pytest.fixture()
def split_s1() -> Split:
    """Split S1 with two unpaid members."""
    return Split(
        split_id="S1",
        members=[
            Member(id="M1", extra={"name": "Asha", "share": 250}),
            Member(id="M2", extra={"name": "Ravi", "share": 250}),
        ],
        extra={"title": "Dinner", "total": 500},
    )


@pytest.fixture()
def store(split_s1: Split) -> InMemorySplitStore:
    s = InMemorySplitStore()
    s.put(split_s1)
    return s
