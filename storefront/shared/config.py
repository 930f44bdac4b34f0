"""Environment-driven settings for the storefront service."""
from __future__ import annotations

import os
from dataclasses import dataclass, field


def _csv(raw: str) -> tuple[str, ...]:
    return tuple(part.strip().upper() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    """Immutable runtime configuration, read once at startup."""

    base_url: str = "http://localhost:3000"
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_api_version: str = "2023-10-16"
    gateway_timeout: float = 10.0
    currency: str = "inr"
    shipping_countries: tuple[str, ...] = field(default_factory=lambda: ("IN",))
    promo_coupon_code: str = "discount1"
    promo_target_minimum: int = 100  # minor units
    delivery_lead_days: int = 7
    order_store_backend: str = "memory"
    redis_url: str = "redis://localhost:6379/0"
    identity_token_secret: str = ""
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        base_url = os.getenv("STOREFRONT_BASE_URL") or os.getenv(
            "NEXT_PUBLIC_BASE_URL", "http://localhost:3000"
        )
        return cls(
            base_url=base_url.rstrip("/"),
            stripe_secret_key=os.getenv("STRIPE_SECRET_KEY", ""),
            stripe_webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET", ""),
            stripe_api_version=os.getenv("STRIPE_API_VERSION", "2023-10-16"),
            gateway_timeout=float(os.getenv("GATEWAY_TIMEOUT_SECONDS", "10")),
            currency=os.getenv("STORE_CURRENCY", "inr").lower(),
            shipping_countries=_csv(os.getenv("SHIPPING_COUNTRIES", "IN")),
            promo_coupon_code=os.getenv("PROMO_COUPON_CODE", "discount1"),
            promo_target_minimum=int(os.getenv("PROMO_TARGET_MINIMUM", "100")),
            delivery_lead_days=int(os.getenv("DELIVERY_LEAD_DAYS", "7")),
            order_store_backend=os.getenv("ORDER_STORE_BACKEND", "memory").lower(),
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
            identity_token_secret=os.getenv("IDENTITY_TOKEN_SECRET", ""),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def success_url(self) -> str:
        # The gateway substitutes the placeholder with the real session handle.
        return f"{self.base_url}/checkout/success?session_id={{CHECKOUT_SESSION_ID}}"

    @property
    def cancel_url(self) -> str:
        return f"{self.base_url}/cart"
