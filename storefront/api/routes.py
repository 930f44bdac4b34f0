"""
Storefront routes.

POST /checkout           – open a gateway checkout session for a cart
POST /webhook            – verified gateway notifications
GET  /orders             – order for a session handle (materialized on demand)
GET  /orders/mine        – orders of the authenticated buyer
GET  /orders/{order_id}  – order by its human-facing id
"""
from __future__ import annotations

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Header, Query, Request

from storefront.shared.errors import MissingParameterError
from storefront.shared.schemas import (
    CheckoutRequest,
    CheckoutResponse,
    ErrorResponse,
    OrderResponse,
    OrdersResponse,
    WebhookAck,
)

from .dependencies import Services, get_buyer_email, get_services

logger = structlog.get_logger(__name__)

router = APIRouter()

SIGNATURE_HEADER = "Stripe-Signature"


@router.post(
    "/checkout",
    response_model=CheckoutResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    tags=["checkout"],
    summary="Open a checkout session for a cart",
)
async def create_checkout(
    body: CheckoutRequest,
    services: Services = Depends(get_services),
    buyer_email: str | None = Depends(get_buyer_email),
) -> CheckoutResponse:
    session = await services.checkout.initiate(
        body.items, coupon_code=body.coupon_code, buyer_email=buyer_email
    )
    return CheckoutResponse(session_handle=session.session_handle)


@router.post(
    "/webhook",
    response_model=WebhookAck,
    responses={400: {"model": ErrorResponse}},
    tags=["webhooks"],
    summary="Receive a gateway notification",
)
async def receive_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    signature: str | None = Header(default=None, alias=SIGNATURE_HEADER),
    services: Services = Depends(get_services),
) -> WebhookAck:
    payload = await request.body()
    dispatch = services.webhooks.receive(payload, signature)
    if dispatch.materialize:
        background_tasks.add_task(services.webhooks.materialize, dispatch.materialize)
    return WebhookAck(received=True)


@router.get(
    "/orders",
    response_model=OrderResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    tags=["orders"],
    summary="Get (or materialize) the order for a checkout session",
)
async def get_order_for_session(
    session_handle: str | None = Query(default=None, alias="sessionHandle"),
    session_id: str | None = Query(default=None),
    services: Services = Depends(get_services),
) -> OrderResponse:
    handle = session_handle or session_id
    if not handle:
        raise MissingParameterError("Missing session_id parameter")
    order = await services.queries.get_by_session_handle(handle)
    return OrderResponse(order=order)


@router.get(
    "/orders/mine",
    response_model=OrdersResponse,
    tags=["orders"],
    summary="List the authenticated buyer's orders",
)
async def list_my_orders(
    services: Services = Depends(get_services),
    buyer_email: str | None = Depends(get_buyer_email),
) -> OrdersResponse:
    orders = await services.queries.list_for_buyer(buyer_email)
    return OrdersResponse(orders=orders)


@router.get(
    "/orders/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}},
    tags=["orders"],
    summary="Get an order by id",
)
async def get_order(
    order_id: str,
    services: Services = Depends(get_services),
) -> OrderResponse:
    order = await services.queries.get_by_order_id(order_id)
    return OrderResponse(order=order)


@router.get("/health", summary="Health check")
async def health() -> dict:
    return {"status": "ok", "service": "storefront"}
