"""
Rattrapage hors-ligne des crédits de fidélité.

Usage:
    python -m storefront.loyalty.backfill --limit 500

Parcourt toutes les commandes ayant un utilisateur et des points mais aucun
crédit enregistré, page par page (curseur created_at, session_id).
Sans risque de double crédit: award_loyalty_points est clé par session_id.
"""
import argparse
import logging
from datetime import datetime
from typing import Dict, List, Optional, Protocol, Tuple

from storefront.orders.models import Order
from .service import LoyaltyUpdater

logger = logging.getLogger(__name__)


class UncreditedOrders(Protocol):
    def list_uncredited_orders(
        self,
        limit: int = 100,
        after: Optional[Tuple[datetime, str]] = None,
    ) -> List[Order]: ...


def backfill_loyalty_credits(orders: UncreditedOrders, updater: LoyaltyUpdater, limit: int = 100) -> Dict[str, int]:
    """`limit` est la taille de page; la boucle continue jusqu'à une page incomplète."""
    stats = {"scanned": 0, "credited": 0, "failed": 0}
    cursor: Optional[Tuple[datetime, str]] = None
    while True:
        page = orders.list_uncredited_orders(limit=limit, after=cursor)
        for order in page:
            stats["scanned"] += 1
            try:
                if updater.award(order):
                    stats["credited"] += 1
            except Exception:
                stats["failed"] += 1
                logger.exception("loyalty.backfill failed session_id=%s user_id=%s", order.session_id, order.user_id)
        if len(page) < limit:
            break
        cursor = (page[-1].created_at, page[-1].session_id)
    logger.info("loyalty.backfill scanned=%s credited=%s failed=%s", stats["scanned"], stats["credited"], stats["failed"])
    return stats


def main() -> None:
    parser = argparse.ArgumentParser(description="Rejoue les crédits de fidélité manquants.")
    parser.add_argument("--limit", type=int, default=100, help="taille de page")
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO)

    from storefront.dependencies import build_services
    services = build_services()
    stats = backfill_loyalty_credits(services.orders, services.loyalty, limit=max(1, args.limit))
    print(stats)


if __name__ == "__main__":
    main()
