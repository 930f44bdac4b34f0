"""Buyer identity from the upstream identity provider's bearer token."""
from __future__ import annotations

import jwt
import structlog

logger = structlog.get_logger(__name__)


def buyer_email_from_authorization(authorization: str | None, secret: str) -> str | None:
    """
    Return the ``email`` claim of a valid HS256 bearer token, else None.

    Missing, malformed, expired or forged tokens all mean "anonymous"; the
    caller decides what an anonymous buyer may do.
    """
    if not authorization or not secret:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    try:
        claims = jwt.decode(token.strip(), secret, algorithms=["HS256"])
    except jwt.InvalidTokenError as exc:
        logger.warning("identity_token_rejected", error=str(exc))
        return None
    email = claims.get("email")
    return email if isinstance(email, str) and email else None
