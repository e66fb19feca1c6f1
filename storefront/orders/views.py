# module storefront.orders.views

"""Endpoints de vérification de paiement et d'enregistrement des commandes.
- /verify-session: appelé par la page de succès (ou un polling) avec le session_id Stripe.
- /stripe-webhook: même réconciliation déclenchée par Stripe (checkout.session.completed).
Les deux chemins sont idempotents: la commande est clé par session_id.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field
from starlette.concurrency import run_in_threadpool

from storefront.dependencies import Services, get_services
from storefront.errors import PaymentNotCompletedError, ValidationError
from storefront.utils.rate_limit import optional_rate_limit

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["Orders API"])

COMPLETED_EVENTS = {
    "checkout.session.completed",
    "checkout.session.async_payment_succeeded",
}


class VerifySessionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(default="", alias="sessionId")


@router.post("/verify-session", dependencies=[Depends(optional_rate_limit(times=30, seconds=60))])
def verify_session(payload: VerifySessionRequest, services: Services = Depends(get_services)):
    """Vérifie la session Stripe et enregistre la commande (une seule fois par session).
    - 200 {success, order}: commande créée ou rejouée à l'identique.
    - 400: session_id manquant, paiement non finalisé.
    - 500: session inconnue, Stripe ou Supabase en échec (détail journalisé uniquement).
    """
    session_id = payload.session_id.strip()
    if not session_id:
        raise ValidationError("Missing session_id")
    try:
        result = services.reconciler.verify_session(session_id)
    except PaymentNotCompletedError:
        raise
    except Exception:
        logger.exception("Erreur verify_session session_id=%s", session_id)
        raise HTTPException(status_code=500, detail="Failed to verify session")
    return {"success": True, "order": result.order.to_payload()}


@router.post("/stripe-webhook", include_in_schema=False)
async def stripe_webhook(request: Request, services: Services = Depends(get_services)):
    """Webhook Stripe: réconcilie la session dès que Stripe la déclare terminée.
    - Signature validée par services.gateway.parse_event (STRIPE_WEBHOOK_SECRET).
    - Réponse {"status": "ok", "state": ...} ou {"status": "ignored"}.
    - 400 si signature/payload invalide; 500 pour que Stripe relivre l'événement.
    """
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    try:
        event = services.gateway.parse_event(payload, sig_header)
    except Exception:
        logger.exception("Erreur stripe_webhook signature")
        raise HTTPException(status_code=400, detail="Invalid Stripe webhook payload")

    event_type = (event or {}).get("type")
    if event_type not in COMPLETED_EVENTS:
        return {"status": "ignored"}

    session_id = (((event.get("data") or {}).get("object")) or {}).get("id") or ""
    if not session_id:
        raise HTTPException(status_code=400, detail="Invalid Stripe webhook payload")
    try:
        result = await run_in_threadpool(services.reconciler.verify_session, session_id)
    except PaymentNotCompletedError:
        # Paiement asynchrone pas encore abouti: l'événement async_payment_succeeded suivra
        logger.info("orders.webhook pending session_id=%s type=%s", session_id, event_type)
        return {"status": "ignored"}
    except Exception:
        logger.exception("Erreur stripe_webhook session_id=%s", session_id)
        raise HTTPException(status_code=500, detail="Failed to verify session")
    logger.info("orders.webhook session_id=%s state=%s", session_id, result.state.value)
    return {"status": "ok", "state": result.state.value}
