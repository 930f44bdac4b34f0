"""
Failure scenarios package.

Provides the FailureResult dataclass used by all scenario modules, the
ScenarioTarget describing the deployment under test, and a helper that signs
webhook payloads the way the payment gateway does.
"""
from __future__ import annotations

import hashlib
import hmac
import json
import time
from dataclasses import dataclass, field
from typing import Any


@dataclass
class FailureResult:
    """Result of a single failure scenario run against one deployment."""

    scenario_name: str
    service: str
    expected_outcome: str
    actual_outcome: str
    correct: bool
    details: dict[str, Any] = field(default_factory=dict)
    error: str | None = None


@dataclass(frozen=True)
class ScenarioTarget:
    """A running storefront plus a completed checkout session to reconcile."""

    name: str
    base_url: str
    session_handle: str
    webhook_secret: str


def sign_payload(payload: bytes, secret: str, timestamp: int | None = None) -> str:
    """Build a ``Stripe-Signature`` header value for ``payload``."""
    ts = int(time.time()) if timestamp is None else timestamp
    signed = f"{ts}.".encode() + payload
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={ts},v1={digest}"


def checkout_completed_event(session_handle: str, event_id: str = "evt_scenario") -> bytes:
    return json.dumps(
        {
            "id": event_id,
            "object": "event",
            "type": "checkout.session.completed",
            "data": {"object": {"id": session_handle, "object": "checkout.session"}},
        }
    ).encode()
