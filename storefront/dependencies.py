"""
Assemblage explicite des collaborateurs (Supabase, Stripe) et des services métier.
- build_services(): appelé une fois par le lifespan, stocké dans app.state.services.
- get_services(): dépendance FastAPI; les tests la remplacent via app.dependency_overrides.
"""
from fastapi import Request

from storefront import config
from storefront.catalog.repository import SupabaseCatalog
from storefront.errors import UpstreamServiceError
from storefront.infra.supabase_client import create_service_supabase
from storefront.loyalty.repository import SupabaseLoyaltyLedger
from storefront.loyalty.service import LoyaltyUpdater
from storefront.orders.repository import SupabaseOrderStore
from storefront.orders.service import SessionReconciler
from storefront.payments.cart import CartPricingValidator
from storefront.payments.service import CheckoutOptions, PaymentSessionFactory
from storefront.payments.stripe_client import StripeGateway


class Services:
    def __init__(self, *, catalog, gateway, orders, ledger, options: CheckoutOptions, client=None):
        self.client = client
        self.catalog = catalog
        self.gateway = gateway
        self.orders = orders
        self.ledger = ledger
        self.pricing = CartPricingValidator(catalog)
        self.sessions = PaymentSessionFactory(gateway, options)
        self.loyalty = LoyaltyUpdater(ledger)
        self.reconciler = SessionReconciler(gateway, orders, self.loyalty)


def build_services() -> Services:
    client = create_service_supabase()
    return Services(
        client=client,
        catalog=SupabaseCatalog(client),
        gateway=StripeGateway(config.STRIPE_SECRET_KEY, config.STRIPE_WEBHOOK_SECRET),
        orders=SupabaseOrderStore(client),
        ledger=SupabaseLoyaltyLedger(client),
        options=CheckoutOptions.from_config(),
    )


def get_services(request: Request) -> Services:
    services = getattr(request.app.state, "services", None)
    if services is None:
        raise UpstreamServiceError("Services not initialised")
    return services
