"""Inbound payment webhooks.

Each webhook is signature-verified, parsed, and reconciled against the
split store exactly once per member.
"""
