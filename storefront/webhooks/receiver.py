"""
Webhook receiver.

Per delivery:
  1. Verify the signature against the raw body (Rejected → 400, nothing else
     happens; the payload is never inspected).
  2. Classify the event into a known variant.
  3. Dispatch: ``checkout.session.completed`` schedules order materialization;
     every other variant is acknowledged and ignored.

Materialization runs after the acknowledgement and its failures are only
logged: the gateway retries non-2xx deliveries, and the buyer's poll can still
materialize the session later.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum as PyEnum

import structlog

from storefront.orders.materializer import OrderMaterializer
from storefront.shared.errors import StorefrontError, VerificationError
from storefront.shared.gateway import PaymentGateway, SignatureError
from storefront.shared.metrics import WEBHOOK_EVENTS
from storefront.webhooks.events import (
    CheckoutCompleted,
    PaymentSucceeded,
    WebhookEvent,
    parse_event,
)

logger = structlog.get_logger(__name__)


class WebhookOutcome(str, PyEnum):
    handled = "handled"
    ignored = "ignored"


@dataclass(frozen=True)
class Dispatch:
    """Result of receiving a delivery: what it was and which session, if any, to materialize."""

    event: WebhookEvent
    outcome: WebhookOutcome
    materialize: str | None = None


class WebhookReceiver:
    def __init__(
        self, gateway: PaymentGateway, materializer: OrderMaterializer, secret: str
    ) -> None:
        self._gateway = gateway
        self._materializer = materializer
        self._secret = secret

    def receive(self, payload: bytes, signature: str | None) -> Dispatch:
        """Verify and classify a delivery. Raises ``VerificationError`` on rejection."""
        try:
            verified = self._gateway.verify_event(payload, signature, self._secret)
        except SignatureError as exc:
            WEBHOOK_EVENTS.labels(outcome="rejected").inc()
            logger.warning("webhook_rejected", reason=exc.kind, error=exc.message)
            raise VerificationError(details=exc.message) from exc

        event = parse_event(verified)
        logger.info("webhook_verified", event_id=verified.id, event_type=verified.type)

        if isinstance(event, CheckoutCompleted):
            WEBHOOK_EVENTS.labels(outcome="handled").inc()
            return Dispatch(event, WebhookOutcome.handled, materialize=event.session_handle)
        if isinstance(event, PaymentSucceeded):
            logger.info("payment_succeeded", payment_intent_id=event.payment_intent_id)
        else:
            logger.info("webhook_event_ignored", event_type=event.event_type)
        WEBHOOK_EVENTS.labels(outcome="ignored").inc()
        return Dispatch(event, WebhookOutcome.ignored)

    async def materialize(self, session_handle: str) -> None:
        """Background step for a completed checkout; never raises."""
        try:
            order = await self._materializer.materialize(session_handle)
        except StorefrontError as exc:
            logger.error(
                "webhook_materialization_failed",
                session_handle=session_handle,
                error=exc.error,
                details=exc.details,
            )
            return
        except Exception:
            logger.exception("webhook_materialization_crashed", session_handle=session_handle)
            return
        logger.info(
            "webhook_order_ready", session_handle=session_handle, order_id=order.order_id
        )
