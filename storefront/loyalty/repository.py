"""
Grand livre de fidélité (loyalty_accounts + loyalty_history) via la fonction Postgres
award_loyalty_points: incrément des compteurs et ajout à l'historique dans une seule transaction,
clé d'unicité sur session_id (voir sql/schema.sql).
"""
import logging

from supabase import Client

from storefront.errors import UpstreamServiceError

logger = logging.getLogger(__name__)


# module storefront.loyalty.repository
class SupabaseLoyaltyLedger:
    function = "award_loyalty_points"

    def __init__(self, client: Client):
        self._client = client

    def credit(self, user_id: str, session_id: str, points: int, description: str) -> bool:
        """
        Crédite `points` au compte `user_id` pour la session donnée.
        Retourne False si cette session a déjà été créditée (aucune mutation).
        """
        try:
            res = self._client.rpc(
                self.function,
                {
                    "p_user_id": user_id,
                    "p_session_id": session_id,
                    "p_amount": points,
                    "p_description": description,
                },
            ).execute()
        except Exception as e:
            logger.exception("loyalty.repository.credit failed user_id=%s session_id=%s", user_id, session_id)
            raise UpstreamServiceError("Loyalty credit failed") from e
        return bool(res.data)
