import logging

from fastapi import APIRouter, Depends, HTTPException

from storefront.dependencies import Services, get_services
from storefront.errors import ValidationError
from storefront.utils.rate_limit import optional_rate_limit
from .models import CheckoutRequest, CheckoutResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["Checkout API"])


# module storefront.payments.views
@router.post(
    "/create-checkout-session",
    response_model=CheckoutResponse,
    dependencies=[Depends(optional_rate_limit(times=10, seconds=60))],
)
def create_checkout_session(payload: CheckoutRequest, services: Services = Depends(get_services)):
    """
    Crée une session Checkout Stripe à partir du panier client.
    - Entrée JSON: { "items": [ { "id": "<product_id>", "size": "<label>", "qty": <int> } ], "customerEmail"?, "userId"? }
    - Étapes:
      1) Tarifer chaque ligne depuis le catalogue (services.pricing), échec au premier article invalide
      2) Ouvrir la session Stripe (services.sessions) et renvoyer {url}
    - Erreurs: 400 panier vide / produit introuvable / rupture / taille invalide, 500 Stripe ou catalogue
    """
    try:
        line_items = services.pricing.price_cart(payload.items)
        url = services.sessions.create(
            line_items,
            customer_email=payload.customer_email,
            user_id=payload.user_id,
        )
    except ValidationError:
        raise
    except Exception:
        logger.exception("Erreur create_checkout_session")
        raise HTTPException(status_code=500, detail="Failed to create checkout session")
    return CheckoutResponse(url=url)
