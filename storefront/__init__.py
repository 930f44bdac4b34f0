"""Checkout completion and order reconciliation service."""
