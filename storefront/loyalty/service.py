"""
Calcul et attribution des points de fidélité (1 point par unité monétaire entière).
"""
import logging
from typing import Optional, Protocol

from storefront.orders.models import Order

logger = logging.getLogger(__name__)


class LoyaltyLedger(Protocol):
    def credit(self, user_id: str, session_id: str, points: int, description: str) -> bool: ...


def compute_points(amount_total_minor: Optional[int], user_id: Optional[str]) -> int:
    """floor(montant en centimes / 100), 0 sans utilisateur."""
    if not user_id:
        return 0
    return max(int(amount_total_minor or 0), 0) // 100


def order_label(session_id: str) -> str:
    return f"Order #{session_id[-8:]}"


class LoyaltyUpdater:
    def __init__(self, ledger: LoyaltyLedger):
        self._ledger = ledger

    def award(self, order: Order) -> int:
        """
        Crédite les points de la commande; retourne le nombre de points effectivement crédités.
        Aucune mutation si pas d'utilisateur, 0 point, ou session déjà créditée.
        """
        if not order.user_id or order.points_earned <= 0:
            return 0
        credited = self._ledger.credit(
            order.user_id,
            order.session_id,
            order.points_earned,
            order_label(order.session_id),
        )
        if not credited:
            logger.info("loyalty.award already credited session_id=%s user_id=%s", order.session_id, order.user_id)
            return 0
        logger.info("loyalty.award credited=%s session_id=%s user_id=%s", order.points_earned, order.session_id, order.user_id)
        return order.points_earned
