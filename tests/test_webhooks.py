"""Tests for webhook verification and dispatch."""
from dataclasses import replace

from fastapi.testclient import TestClient

from storefront.api.main import create_app
from storefront.orders.store import InMemoryOrderStore, RedisOrderStore
from storefront.shared.gateway import GatewayEvent
from storefront.webhooks.events import (
    CheckoutCompleted,
    PaymentSucceeded,
    UnhandledEvent,
    parse_event,
)

from .conftest import UnreachableRedis, completed_session, event_payload, sign

HANDLE = "cs_test_webhook0001ABCDEFGH"


def completed_event(handle=HANDLE, event_id="evt_1"):
    return event_payload(
        "checkout.session.completed", {"id": handle, "object": "checkout.session"}, event_id
    )


class TestParseEvent:
    def test_checkout_completed(self):
        event = parse_event(
            GatewayEvent(id="evt_1", type="checkout.session.completed", object={"id": HANDLE})
        )
        assert event == CheckoutCompleted(event_id="evt_1", session_handle=HANDLE)

    def test_payment_intent_succeeded(self):
        event = parse_event(
            GatewayEvent(id="evt_2", type="payment_intent.succeeded", object={"id": "pi_1"})
        )
        assert event == PaymentSucceeded(event_id="evt_2", payment_intent_id="pi_1")

    def test_anything_else_is_unhandled(self):
        event = parse_event(GatewayEvent(id="evt_3", type="charge.refunded", object={"id": "ch_1"}))
        assert event == UnhandledEvent(event_id="evt_3", event_type="charge.refunded")

    def test_completed_without_session_id_is_unhandled(self):
        event = parse_event(GatewayEvent(type="checkout.session.completed", object={}))
        assert isinstance(event, UnhandledEvent)


class TestWebhookRejection:
    def test_forged_signature_never_reaches_materializer(self, client, gateway):
        payload = completed_event()
        r = client.post(
            "/webhook", content=payload, headers={"Stripe-Signature": sign(payload, "whsec_forged")}
        )
        assert r.status_code == 400
        assert r.json()["error"] == "Webhook Error"
        assert gateway.calls["retrieve_session"] == 0

    def test_missing_signature(self, client, gateway):
        r = client.post("/webhook", content=completed_event())
        assert r.status_code == 400
        assert gateway.calls["retrieve_session"] == 0

    def test_tampered_body(self, client, gateway):
        payload = completed_event()
        signature = sign(payload)
        tampered = completed_event(handle="cs_test_someone_else")
        r = client.post("/webhook", content=tampered, headers={"Stripe-Signature": signature})
        assert r.status_code == 400
        assert gateway.calls["retrieve_session"] == 0

    def test_stale_timestamp(self, client, gateway):
        payload = completed_event()
        r = client.post(
            "/webhook",
            content=payload,
            headers={"Stripe-Signature": sign(payload, timestamp=1_000_000_000)},
        )
        assert r.status_code == 400

    def test_unconfigured_secret_rejects_everything(self, settings, gateway, store):
        app = create_app(
            settings=replace(settings, stripe_webhook_secret=""), gateway=gateway, store=store
        )
        payload = completed_event()
        with TestClient(app) as unconfigured:
            r = unconfigured.post("/webhook", content=payload, headers={"Stripe-Signature": sign(payload)})
        assert r.status_code == 400
        assert gateway.calls["retrieve_session"] == 0


class TestWebhookDispatch:
    def test_completed_checkout_materializes_order(self, client, gateway, store):
        gateway.sessions[HANDLE] = completed_session(HANDLE)
        payload = completed_event()
        r = client.post("/webhook", content=payload, headers={"Stripe-Signature": sign(payload)})
        assert r.status_code == 200
        assert r.json() == {"received": True}
        assert gateway.calls["retrieve_session"] == 1
        assert client.get("/orders", params={"session_id": HANDLE}).status_code == 200
        assert gateway.calls["retrieve_session"] == 1

    def test_redelivery_does_not_duplicate(self, client, gateway):
        gateway.sessions[HANDLE] = completed_session(HANDLE)
        payload = completed_event()
        for _ in range(3):
            r = client.post("/webhook", content=payload, headers={"Stripe-Signature": sign(payload)})
            assert r.status_code == 200
        assert gateway.calls["retrieve_session"] == 1

    def test_materialization_failure_is_still_acknowledged(self, client, gateway):
        payload = completed_event(handle="cs_test_unknown_session")
        r = client.post("/webhook", content=payload, headers={"Stripe-Signature": sign(payload)})
        assert r.status_code == 200
        assert gateway.calls["retrieve_session"] == 1

    def test_other_events_are_ignored(self, client, gateway):
        payload = event_payload("customer.created", {"id": "cus_1", "object": "customer"})
        r = client.post("/webhook", content=payload, headers={"Stripe-Signature": sign(payload)})
        assert r.status_code == 200
        assert gateway.calls["retrieve_session"] == 0

    def test_payment_intent_succeeded_is_acknowledged(self, client, gateway):
        payload = event_payload("payment_intent.succeeded", {"id": "pi_1", "object": "payment_intent"})
        r = client.post("/webhook", content=payload, headers={"Stripe-Signature": sign(payload)})
        assert r.status_code == 200
        assert gateway.calls["retrieve_session"] == 0


class BrokenStore(InMemoryOrderStore):
    async def get(self, session_handle):
        raise RuntimeError("store exploded")


class TestWebhookStoreFailures:
    def _client(self, settings, gateway, store):
        return TestClient(create_app(settings=settings, gateway=gateway, store=store))

    def test_store_outage_is_still_acknowledged(self, settings, gateway):
        gateway.sessions[HANDLE] = completed_session(HANDLE)
        payload = completed_event()
        with self._client(settings, gateway, RedisOrderStore(UnreachableRedis())) as client:
            r = client.post("/webhook", content=payload, headers={"Stripe-Signature": sign(payload)})
        assert r.status_code == 200
        assert gateway.calls["retrieve_session"] == 0

    def test_unexpected_store_error_is_contained(self, settings, gateway):
        gateway.sessions[HANDLE] = completed_session(HANDLE)
        payload = completed_event()
        with self._client(settings, gateway, BrokenStore()) as client:
            r = client.post("/webhook", content=payload, headers={"Stripe-Signature": sign(payload)})
        assert r.status_code == 200
        assert gateway.calls["retrieve_session"] == 0
