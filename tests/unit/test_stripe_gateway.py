import pytest
import stripe

from storefront.errors import GatewayError, SessionNotFoundError
from storefront.orders.models import build_order
from storefront.payments.stripe_client import StripeGateway


def test_create_session_passes_api_key_and_config(monkeypatch):
    calls = {}

    def _fake_create(**kwargs):
        calls.update(kwargs)
        return {"id": "cs_test_123", "url": "https://checkout.stripe.com/c/pay/cs_test_123"}

    monkeypatch.setattr(stripe.checkout.Session, "create", _fake_create)

    session = StripeGateway("sk_test_abc").create_session({"mode": "payment", "line_items": []})

    assert session["url"] == "https://checkout.stripe.com/c/pay/cs_test_123"
    assert calls["api_key"] == "sk_test_abc"
    assert calls["mode"] == "payment"


def test_create_session_wraps_stripe_errors(monkeypatch):
    def _boom(**kwargs):
        raise stripe.APIConnectionError("Network error")

    monkeypatch.setattr(stripe.checkout.Session, "create", _boom)

    with pytest.raises(GatewayError):
        StripeGateway("sk_test_abc").create_session({})


def test_retrieve_session_expands_line_items(monkeypatch):
    calls = {}

    def _fake_retrieve(session_id, **kwargs):
        calls["id"] = session_id
        calls.update(kwargs)
        return {"id": session_id, "payment_status": "paid"}

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", _fake_retrieve)

    session = StripeGateway("sk_test_abc").retrieve_session("cs_test_123")

    assert session["payment_status"] == "paid"
    assert calls["id"] == "cs_test_123"
    assert calls["expand"] == ["line_items"]
    assert calls["api_key"] == "sk_test_abc"


def test_retrieve_unknown_session_raises_not_found(monkeypatch):
    def _missing(session_id, **kwargs):
        raise stripe.InvalidRequestError("No such checkout.session: cs_nope", "id", code="resource_missing")

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", _missing)

    with pytest.raises(SessionNotFoundError) as exc:
        StripeGateway("sk_test_abc").retrieve_session("cs_nope")
    assert exc.value.session_id == "cs_nope"


def test_retrieve_other_invalid_request_is_gateway_error(monkeypatch):
    def _invalid(session_id, **kwargs):
        raise stripe.InvalidRequestError("Invalid API key", None, code="api_key_expired")

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", _invalid)

    with pytest.raises(GatewayError):
        StripeGateway("sk_test_abc").retrieve_session("cs_test_123")


def test_parse_event_rejects_bad_signature():
    gateway = StripeGateway("sk_test_abc", webhook_secret="whsec_test")
    with pytest.raises(stripe.SignatureVerificationError):
        gateway.parse_event(b'{"id": "evt_1", "type": "checkout.session.completed"}', "t=1,v1=deadbeef")


class _LineItemPages:
    def __init__(self, items):
        self._items = items

    def auto_paging_iter(self):
        return iter(self._items)


def _line_item(i):
    return {"id": f"li_{i}", "description": f"Item {i}", "quantity": 1, "amount_total": 500, "currency": "aud"}


def test_retrieve_session_reads_every_line_item_page(monkeypatch):
    listed = {}

    def _fake_retrieve(session_id, **kwargs):
        return {
            "id": session_id,
            "payment_status": "paid",
            "amount_total": 6000,
            "currency": "aud",
            "line_items": {"object": "list", "has_more": True, "data": [_line_item(i) for i in range(10)]},
        }

    def _fake_list(session_id, **kwargs):
        listed["id"] = session_id
        listed.update(kwargs)
        return _LineItemPages([_line_item(i) for i in range(12)])

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", _fake_retrieve)
    monkeypatch.setattr(stripe.checkout.Session, "list_line_items", _fake_list)

    session = StripeGateway("sk_test_abc").retrieve_session("cs_test_many")

    assert listed == {"id": "cs_test_many", "limit": 100, "api_key": "sk_test_abc"}
    assert len(session["line_items"]["data"]) == 12
    assert session["line_items"]["has_more"] is False

    order = build_order("cs_test_many", session)
    assert len(order.items) == 12
    assert sum(item.amount_total for item in order.items) == order.total_amount == 60.0


def test_retrieve_session_single_page_skips_listing(monkeypatch):
    def _fake_retrieve(session_id, **kwargs):
        return {"id": session_id, "line_items": {"has_more": False, "data": [_line_item(0)]}}

    def _unexpected(*args, **kwargs):
        raise AssertionError("list_line_items should not be called")

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", _fake_retrieve)
    monkeypatch.setattr(stripe.checkout.Session, "list_line_items", _unexpected)

    session = StripeGateway("sk_test_abc").retrieve_session("cs_test_one")
    assert len(session["line_items"]["data"]) == 1


def test_retrieve_session_line_item_listing_failure_is_gateway_error(monkeypatch):
    def _fake_retrieve(session_id, **kwargs):
        return {"id": session_id, "line_items": {"has_more": True, "data": []}}

    def _boom(session_id, **kwargs):
        raise stripe.APIConnectionError("Network error")

    monkeypatch.setattr(stripe.checkout.Session, "retrieve", _fake_retrieve)
    monkeypatch.setattr(stripe.checkout.Session, "list_line_items", _boom)

    with pytest.raises(GatewayError):
        StripeGateway("sk_test_abc").retrieve_session("cs_test_many")
