import pytest

from storefront.errors import GatewayError
from storefront.payments.models import LineItem
from storefront.payments.service import CheckoutOptions, PaymentSessionFactory


def _line_items():
    return [LineItem(currency="aud", product_name="Tee", description="M", unit_amount=1000, quantity=2)]


def test_create_returns_gateway_url(gateway, options):
    url = PaymentSessionFactory(gateway, options).create(_line_items(), customer_email="ada@example.com", user_id="user-1")

    assert url == "https://checkout.stripe.test/c/pay/cs_test_00000001"
    config = gateway.created[0]
    assert config["mode"] == "payment"
    assert config["payment_method_types"] == ["card"]
    assert config["metadata"] == {"userId": "user-1"}
    assert config["customer_email"] == "ada@example.com"
    assert config["locale"] == "en"
    assert config["shipping_address_collection"] == {"allowed_countries": ["AU"]}
    assert config["allow_promotion_codes"] is True
    assert config["success_url"] == "https://shop.example.com/success.html?session_id={CHECKOUT_SESSION_ID}"
    assert config["cancel_url"] == "https://shop.example.com/index.html#menu"
    assert config["line_items"][0]["price_data"]["unit_amount"] == 1000


def test_anonymous_checkout_sends_empty_user_and_no_email(gateway, options):
    PaymentSessionFactory(gateway, options).create(_line_items())

    config = gateway.created[0]
    assert config["metadata"] == {"userId": ""}
    assert "customer_email" not in config


def test_gateway_failure_propagates(gateway, options):
    gateway.fail_create = True
    with pytest.raises(GatewayError):
        PaymentSessionFactory(gateway, options).create(_line_items())
    assert gateway.created == []


def test_missing_url_is_a_gateway_error(options):
    class _NoUrlGateway:
        def create_session(self, config):
            return {"id": "cs_test_x"}

    with pytest.raises(GatewayError):
        PaymentSessionFactory(_NoUrlGateway(), options).create(_line_items())


def test_options_trim_trailing_slash():
    opts = CheckoutOptions(site_url="https://shop.example.com/", allowed_countries=["AU", "NZ"], allow_promotion_codes=False)
    assert opts.cancel_url == "https://shop.example.com/index.html#menu"
    assert opts.allowed_countries == ["AU", "NZ"]
