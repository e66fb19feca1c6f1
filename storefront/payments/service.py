"""
Cas d'usage 'payments': panier validé -> session Stripe Checkout -> URL de redirection.
"""
import logging
from typing import Any, Dict, List, Optional, Protocol, Sequence

from storefront import config
from storefront.errors import GatewayError
from .cart import to_stripe_line_items
from .models import LineItem

logger = logging.getLogger(__name__)


class PaymentGateway(Protocol):
    def create_session(self, config: Dict[str, Any]) -> Dict[str, Any]: ...
    def retrieve_session(self, session_id: str) -> Dict[str, Any]: ...


class CheckoutOptions:
    """Paramètres stables de la session: URLs de retour, locale, pays livrables, codes promo."""

    def __init__(
        self,
        site_url: str,
        locale: str = "en",
        allowed_countries: Optional[List[str]] = None,
        allow_promotion_codes: bool = True,
    ):
        self.site_url = site_url.rstrip("/")
        self.locale = locale
        self.allowed_countries = list(allowed_countries or [])
        self.allow_promotion_codes = allow_promotion_codes

    @property
    def success_url(self) -> str:
        return f"{self.site_url}/success.html?session_id={{CHECKOUT_SESSION_ID}}"

    @property
    def cancel_url(self) -> str:
        return f"{self.site_url}/index.html#menu"

    @classmethod
    def from_config(cls) -> "CheckoutOptions":
        return cls(
            site_url=config.SITE_URL,
            locale=config.CHECKOUT_LOCALE,
            allowed_countries=config.ALLOWED_SHIPPING_COUNTRIES,
            allow_promotion_codes=config.ALLOW_PROMOTION_CODES,
        )


# module storefront.payments.service
class PaymentSessionFactory:
    def __init__(self, gateway: PaymentGateway, options: CheckoutOptions):
        self._gateway = gateway
        self._options = options

    def build_config(
        self,
        line_items: Sequence[LineItem],
        customer_email: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Sérialise la requête de session Stripe.
        - metadata.userId est transporté tel quel par Stripe ("" si anonyme), jamais vérifié ici.
        - customer_email n'est envoyé que s'il est fourni.
        """
        session_config: Dict[str, Any] = {
            "payment_method_types": ["card"],
            "mode": "payment",
            "line_items": to_stripe_line_items(line_items),
            "success_url": self._options.success_url,
            "cancel_url": self._options.cancel_url,
            "locale": self._options.locale,
            "metadata": {"userId": user_id or ""},
            "shipping_address_collection": {
                "allowed_countries": self._options.allowed_countries,
            },
            "allow_promotion_codes": self._options.allow_promotion_codes,
        }
        if customer_email:
            session_config["customer_email"] = customer_email
        return session_config

    def create(
        self,
        line_items: Sequence[LineItem],
        customer_email: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> str:
        """Ouvre la session et retourne l'URL Stripe. GatewayError se propage: rien n'a été persisté."""
        session = self._gateway.create_session(
            self.build_config(line_items, customer_email=customer_email, user_id=user_id)
        )
        url = session.get("url")
        if not url:
            raise GatewayError("Checkout session has no redirect URL")
        logger.info("payments.checkout created session_id=%s items=%s user_id=%s", session.get("id"), len(line_items), user_id or "")
        return url
