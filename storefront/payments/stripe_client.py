"""
Adaptateur Stripe: centralise les appels Checkout et la vérification des webhooks.
La clé API est passée à chaque appel (pas de stripe.api_key global).
"""
import logging
from typing import Any, Dict, List

import stripe

from storefront.errors import GatewayError, SessionNotFoundError

logger = logging.getLogger(__name__)


def _as_dict(obj: Any) -> Dict[str, Any]:
    # StripeObject -> dict récursif; les dicts (tests, fixtures) passent tels quels
    if isinstance(obj, dict) and not hasattr(obj, "to_dict"):
        return obj
    to_dict = getattr(obj, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return dict(obj)


# module storefront.payments.stripe_client
class StripeGateway:
    def __init__(self, api_key: str, webhook_secret: str = ""):
        self._api_key = api_key
        self._webhook_secret = webhook_secret

    def create_session(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Crée une session Stripe Checkout.
        Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
        Soulève GatewayError si Stripe refuse ou est injoignable.
        """
        try:
            session = stripe.checkout.Session.create(api_key=self._api_key, **config)
        except stripe.StripeError as e:
            logger.exception("payments.stripe_client.create_session failed")
            raise GatewayError("Failed to create checkout session") from e
        return _as_dict(session)

    def retrieve_session(self, session_id: str) -> Dict[str, Any]:
        """
        Récupère une session Checkout avec tous ses line_items.
        L'expand ne renvoie que la première page: si has_more, la liste complète est relue.
        - SessionNotFoundError si Stripe ne connaît pas l'identifiant.
        - GatewayError pour toute autre erreur Stripe.
        """
        try:
            session = _as_dict(stripe.checkout.Session.retrieve(
                session_id,
                expand=["line_items"],
                api_key=self._api_key,
            ))
            line_items = session.get("line_items") or {}
            if line_items.get("has_more"):
                session["line_items"] = {
                    **line_items,
                    "data": self._list_line_items(session_id),
                    "has_more": False,
                }
        except stripe.InvalidRequestError as e:
            if getattr(e, "code", None) == "resource_missing":
                raise SessionNotFoundError(session_id) from e
            logger.exception("payments.stripe_client.retrieve_session rejected session_id=%s", session_id)
            raise GatewayError("Failed to retrieve checkout session") from e
        except stripe.StripeError as e:
            logger.exception("payments.stripe_client.retrieve_session failed session_id=%s", session_id)
            raise GatewayError("Failed to retrieve checkout session") from e
        return session

    def _list_line_items(self, session_id: str) -> List[Dict[str, Any]]:
        page = stripe.checkout.Session.list_line_items(session_id, limit=100, api_key=self._api_key)
        return [_as_dict(li) for li in page.auto_paging_iter()]

    def parse_event(self, payload: bytes, sig_header: str) -> Dict[str, Any]:
        """
        Valide la signature (Stripe-Signature + STRIPE_WEBHOOK_SECRET) et retourne l'événement.
        Lève ValueError (payload invalide) ou stripe.SignatureVerificationError.
        """
        event = stripe.Webhook.construct_event(payload, sig_header or "", self._webhook_secret or "")
        return _as_dict(event)
