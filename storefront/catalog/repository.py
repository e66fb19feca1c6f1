"""
Accès en lecture au catalogue produits (table 'products').
Contrat: lookup ponctuel par id -> existence, sold_out, paliers de prix.
"""
import logging
from typing import Any, Dict, Optional

from supabase import Client

from storefront.errors import UpstreamServiceError
from storefront.payments.models import Product

logger = logging.getLogger(__name__)

# module storefront.catalog.repository
class SupabaseCatalog:
    table = "products"

    def __init__(self, client: Client):
        self._client = client

    def fetch_product_row(self, product_id: str) -> Optional[Dict[str, Any]]:
        try:
            res = (
                self._client
                .table(self.table)
                .select("id, name, local_name, sold_out, prices")
                .eq("id", str(product_id))
                .limit(1)
                .execute()
            )
        except Exception as e:
            logger.exception("catalog.repository.fetch_product_row failed product_id=%s", product_id)
            raise UpstreamServiceError("Catalog lookup failed") from e
        rows = res.data or []
        return rows[0] if rows else None

    def get_product(self, product_id: str) -> Optional[Product]:
        """
        Retourne le produit ou None s'il n'existe pas.
        - Les paliers viennent de la colonne JSON 'prices' [{label, price}].
        - Soulève UpstreamServiceError si Supabase est injoignable.
        """
        row = self.fetch_product_row(product_id)
        if row is None:
            return None
        return Product(
            id=str(row.get("id")),
            name=row.get("name") or "",
            local_name=row.get("local_name") or None,
            sold_out=bool(row.get("sold_out")),
            prices=row.get("prices") or [],
        )
