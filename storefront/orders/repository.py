"""
Accès aux données pour la feature 'orders' (table 'orders', clé primaire session_id).
L'écriture est un INSERT conditionnel: un doublon (23505) signale un concurrent gagnant.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from postgrest.exceptions import APIError
from supabase import Client

from storefront.errors import UpstreamServiceError
from .models import Order

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"


def _error_code(e: APIError) -> Optional[str]:
    code = getattr(e, "code", None)
    if code:
        return code
    if e.args and isinstance(e.args[0], dict):
        return e.args[0].get("code")
    return None


# module storefront.orders.repository
class SupabaseOrderStore:
    table = "orders"

    def __init__(self, client: Client):
        self._client = client

    def get_order(self, session_id: str) -> Optional[Order]:
        try:
            res = (
                self._client
                .table(self.table)
                .select("*")
                .eq("session_id", session_id)
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.exception("orders.repository.get_order failed session_id=%s", session_id)
            raise UpstreamServiceError("Order lookup failed") from e
        rows = res.data or []
        return Order.model_validate(rows[0]) if rows else None

    def create_order(self, order: Order) -> Optional[Order]:
        """
        Insère la commande si aucune n'existe pour ce session_id.
        - Retourne la ligne persistée (relue depuis la réponse PostgREST).
        - Retourne None si la clé existe déjà (course perdue contre un autre appel).
        """
        try:
            res = self._client.table(self.table).insert(order.to_row()).execute()
        except APIError as e:
            if _error_code(e) == UNIQUE_VIOLATION:
                logger.info("orders.repository.create_order duplicate session_id=%s", order.session_id)
                return None
            logger.exception("orders.repository.create_order failed session_id=%s", order.session_id)
            raise UpstreamServiceError("Order write failed") from e
        except Exception as e:
            logger.exception("orders.repository.create_order failed session_id=%s", order.session_id)
            raise UpstreamServiceError("Order write failed") from e
        rows = res.data or []
        return Order.model_validate(rows[0]) if rows else order

    def list_uncredited_orders(
        self,
        limit: int = 100,
        after: Optional[Tuple[datetime, str]] = None,
    ) -> List[Order]:
        """
        Commandes avec utilisateur et points mais sans entrée loyalty_history.
        Ordre (created_at, session_id) croissant; `after` reprend après la dernière ligne d'une page.
        """
        params: Dict[str, Any] = {"p_limit": limit}
        if after is not None:
            params["p_after_created_at"] = after[0].isoformat()
            params["p_after_session_id"] = after[1]
        try:
            res = self._client.rpc("list_uncredited_orders", params).execute()
        except Exception as e:
            logger.exception("orders.repository.list_uncredited_orders failed")
            raise UpstreamServiceError("Order listing failed") from e
        return [Order.model_validate(row) for row in res.data or []]
