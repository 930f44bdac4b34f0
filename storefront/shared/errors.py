"""Error taxonomy for checkout and order reconciliation.

Every error a request handler can surface derives from ``StorefrontError`` and
knows its HTTP status; the API layer renders them uniformly as
``{"error": ..., "details": ..., "type": ...}``.
"""
from __future__ import annotations


class StorefrontError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    error: str = "Internal Server Error"

    def __init__(
        self,
        error: str | None = None,
        *,
        details: str | None = None,
        type: str | None = None,
    ) -> None:
        self.error = error or self.error
        self.details = details
        self.type = type
        super().__init__(self.error if details is None else f"{self.error}: {details}")

    def to_body(self) -> dict:
        body = {"error": self.error, "details": self.details, "type": self.type}
        return {k: v for k, v in body.items() if v is not None}


class InvalidCartError(StorefrontError):
    status_code = 400
    error = "Invalid request, items are required"


class MissingParameterError(StorefrontError):
    status_code = 400
    error = "Missing required parameter"


class CheckoutInitiationError(StorefrontError):
    """The gateway refused to open a checkout session. Never retried."""

    status_code = 500
    error = "Error creating checkout session"


class VerificationError(StorefrontError):
    """Webhook signature missing, malformed or forged."""

    status_code = 400
    error = "Webhook Error"


class SessionNotFoundError(StorefrontError):
    """Terminal: the gateway has no such session, or it has expired."""

    status_code = 404
    error = "Session does not exist or has expired"


class IncompleteSessionError(StorefrontError):
    """Terminal: the gateway returned a session without line items."""

    status_code = 500
    error = "Missing order line items"


class TransientMaterializationError(StorefrontError):
    """Gateway unavailable or timed out; safe to retry on the next poll."""

    status_code = 500
    error = "Error fetching order details"


class OrderNotFoundError(StorefrontError):
    status_code = 404
    error = "Order not found"
