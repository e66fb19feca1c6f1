"""Couche service de la réconciliation session Stripe -> commande -> fidélité.
États: Unseen -> AlreadyRecorded | Rejected | Recorded (tous terminaux).
- AlreadyRecorded: une commande existe déjà pour la session, renvoyée telle quelle, aucun effet de bord.
- Rejected: la session n'est pas payée (PaymentNotCompletedError), rien n'est écrit, rejouable plus tard.
- Recorded: commande persistée par INSERT conditionnel, puis crédit fidélité best-effort.
Appelable sans risque depuis le callback client, un polling ou le webhook Stripe.
"""
import enum
import logging
from typing import Any, Dict, Optional, Protocol

from storefront.errors import PaymentNotCompletedError, UpstreamServiceError
from storefront.loyalty.service import LoyaltyUpdater, compute_points
from .models import Order, build_order, session_user_id

logger = logging.getLogger(__name__)

PAID = "paid"


class SessionGateway(Protocol):
    def retrieve_session(self, session_id: str) -> Dict[str, Any]: ...


class OrderStore(Protocol):
    def get_order(self, session_id: str) -> Optional[Order]: ...
    def create_order(self, order: Order) -> Optional[Order]: ...


class ReconcileState(str, enum.Enum):
    ALREADY_RECORDED = "already_recorded"
    RECORDED = "recorded"


class Reconciliation:
    def __init__(self, state: ReconcileState, order: Order):
        self.state = state
        self.order = order

    @property
    def created(self) -> bool:
        return self.state is ReconcileState.RECORDED


# module storefront.orders.service
class SessionReconciler:
    def __init__(self, gateway: SessionGateway, orders: OrderStore, loyalty: LoyaltyUpdater):
        self._gateway = gateway
        self._orders = orders
        self._loyalty = loyalty

    def verify_session(self, session_id: str) -> Reconciliation:
        existing = self._orders.get_order(session_id)
        if existing is not None:
            logger.info("orders.verify already_recorded session_id=%s", session_id)
            return Reconciliation(ReconcileState.ALREADY_RECORDED, existing)

        session = self._gateway.retrieve_session(session_id)
        payment_status = session.get("payment_status") or ""
        if payment_status != PAID:
            logger.info("orders.verify rejected session_id=%s payment_status=%s", session_id, payment_status)
            raise PaymentNotCompletedError(payment_status)

        points = compute_points(session.get("amount_total"), session_user_id(session))
        order = build_order(session_id, session, points_earned=points)
        stored = self._orders.create_order(order)
        if stored is None:
            # Course perdue: un autre appel a écrit la commande entre la lecture et l'insert
            winner = self._orders.get_order(session_id)
            if winner is None:
                raise UpstreamServiceError("Order write conflict without a stored order")
            logger.info("orders.verify lost race session_id=%s", session_id)
            return Reconciliation(ReconcileState.ALREADY_RECORDED, winner)

        logger.info("orders.verify recorded session_id=%s total=%s %s user_id=%s", session_id, stored.total_amount, stored.currency, stored.user_id)
        self._award_points(stored)
        return Reconciliation(ReconcileState.RECORDED, stored)

    def _award_points(self, order: Order) -> None:
        # La commande est déjà durable: un échec ici devient une dette rattrapée par loyalty.backfill
        try:
            self._loyalty.award(order)
        except Exception:
            logger.exception("orders.verify loyalty award failed session_id=%s user_id=%s", order.session_id, order.user_id)
