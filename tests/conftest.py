import os

# Avant tout import storefront: pas de Supabase réel, pas de Redis
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_SERVICE_KEY"] = ""
os.environ["DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS"] = "1"
os.environ.pop("LOCAL_RATE_LIMIT_FALLBACK", None)

import threading
from typing import Any, Dict, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient

from storefront.app_setup.factory import create_app
from storefront.dependencies import Services, get_services
from storefront.errors import SessionNotFoundError, UpstreamServiceError
from storefront.orders.models import Order
from storefront.payments.models import Product
from storefront.payments.service import CheckoutOptions


# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


class FakeCatalog:
    def __init__(self, products: Optional[Dict[str, Product]] = None):
        self.products = dict(products or {})
        self.lookups: List[str] = []
        self.fail = False

    def get_product(self, product_id: str) -> Optional[Product]:
        self.lookups.append(product_id)
        if self.fail:
            raise UpstreamServiceError("Catalog lookup failed")
        return self.products.get(product_id)


class FakeGateway:
    """Sessions Stripe en mémoire; `barrier` force deux retrieve concurrents à se croiser."""

    def __init__(self):
        self.sessions: Dict[str, Dict[str, Any]] = {}
        self.created: List[Dict[str, Any]] = []
        self.retrieved: List[str] = []
        self.barrier: Optional[threading.Barrier] = None
        self.fail_create = False
        self.event: Optional[Dict[str, Any]] = None

    def create_session(self, config: Dict[str, Any]) -> Dict[str, Any]:
        if self.fail_create:
            from storefront.errors import GatewayError
            raise GatewayError("Failed to create checkout session")
        self.created.append(config)
        session_id = f"cs_test_{len(self.created):08d}"
        return {"id": session_id, "url": f"https://checkout.stripe.test/c/pay/{session_id}"}

    def retrieve_session(self, session_id: str) -> Dict[str, Any]:
        self.retrieved.append(session_id)
        if self.barrier is not None:
            self.barrier.wait(timeout=5)
        if session_id not in self.sessions:
            raise SessionNotFoundError(session_id)
        return self.sessions[session_id]

    def parse_event(self, payload: bytes, sig_header: str) -> Dict[str, Any]:
        if sig_header != "valid":
            raise ValueError("Invalid signature")
        return self.event or {}


class FakeOrderStore:
    """Clé unique session_id: create_order échoue (None) si la clé existe, comme l'INSERT Postgres."""

    def __init__(self, ledger: Optional["FakeLedger"] = None):
        self.rows: Dict[str, Dict[str, Any]] = {}
        self.writes = 0
        self.rejected_writes = 0
        self.listings = 0
        self.ledger = ledger
        self._lock = threading.Lock()

    def get_order(self, session_id: str) -> Optional[Order]:
        row = self.rows.get(session_id)
        return Order.model_validate(row) if row else None

    def create_order(self, order: Order) -> Optional[Order]:
        with self._lock:
            if order.session_id in self.rows:
                self.rejected_writes += 1
                return None
            self.rows[order.session_id] = order.to_row()
            self.writes += 1
            return Order.model_validate(self.rows[order.session_id])

    def list_uncredited_orders(self, limit: int = 100, after=None) -> List[Order]:
        # Même contrat que la fonction SQL: anti-jointure loyalty_history, tri (created_at, session_id)
        credited = {h["session_id"] for h in self.ledger.history} if self.ledger is not None else set()
        orders = sorted(
            (Order.model_validate(r) for r in self.rows.values()),
            key=lambda o: (o.created_at, o.session_id),
        )
        pending = [
            o for o in orders
            if o.user_id and o.points_earned > 0 and o.session_id not in credited
            and (after is None or (o.created_at, o.session_id) > after)
        ]
        self.listings += 1
        return pending[:limit]


class FakeLedger:
    def __init__(self):
        self.accounts: Dict[str, Dict[str, int]] = {}
        self.history: List[Dict[str, Any]] = []
        self.fail = False
        self._lock = threading.Lock()

    def credit(self, user_id: str, session_id: str, points: int, description: str) -> bool:
        if self.fail:
            raise UpstreamServiceError("Loyalty credit failed")
        with self._lock:
            if any(h["session_id"] == session_id for h in self.history):
                return False
            account = self.accounts.setdefault(user_id, {"points": 0, "total_earned": 0})
            account["points"] += points
            account["total_earned"] += points
            self.history.append({
                "user_id": user_id,
                "session_id": session_id,
                "type": "earn",
                "amount": points,
                "description": description,
            })
            return True


def make_product(product_id="p1", name="Tee", prices=None, sold_out=False, local_name=None) -> Product:
    return Product(
        id=product_id,
        name=name,
        local_name=local_name,
        sold_out=sold_out,
        prices=prices if prices is not None else [{"label": "S", "price": 8.5}, {"label": "M", "price": 10.0}],
    )


def make_session(
    session_id="cs_test_paid_0001",
    payment_status="paid",
    amount_total=2000,
    user_id="user-1",
    currency="aud",
) -> Dict[str, Any]:
    return {
        "id": session_id,
        "object": "checkout.session",
        "payment_status": payment_status,
        "payment_intent": "pi_3Nxyz",
        "amount_total": amount_total,
        "currency": currency,
        "customer_details": {"email": "ada@example.com", "name": "Ada Lovelace"},
        "shipping_details": {
            "name": "Ada Lovelace",
            "address": {"line1": "1 George St", "city": "Sydney", "postal_code": "2000", "country": "AU"},
        },
        "metadata": {"userId": user_id or ""},
        "line_items": {
            "object": "list",
            "data": [
                {"description": "Tee", "quantity": 2, "amount_total": amount_total, "currency": currency},
            ],
        },
    }


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog({
        "p1": make_product(),
        "p2": make_product("p2", name="Cap", prices=[{"label": "One size", "price": 24.99}], local_name="모자"),
        "p3": make_product("p3", name="Hoodie", sold_out=True),
    })


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def orders(ledger) -> FakeOrderStore:
    return FakeOrderStore(ledger)


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


@pytest.fixture
def options() -> CheckoutOptions:
    return CheckoutOptions(site_url="https://shop.example.com", locale="en", allowed_countries=["AU"], allow_promotion_codes=True)


@pytest.fixture
def services(catalog, gateway, orders, ledger, options) -> Services:
    return Services(catalog=catalog, gateway=gateway, orders=orders, ledger=ledger, options=options)


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app, services) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_services] = lambda: services
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def session_factory():
    return make_session


@pytest.fixture
def product_factory():
    return make_product
