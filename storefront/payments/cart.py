"""
Logique panier pure (pas de Stripe, pas de DB): tarification autoritaire depuis le catalogue.
"""
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Protocol, Sequence

from storefront.config import CHECKOUT_CURRENCY
from storefront.errors import EmptyCartError, InvalidSizeError, NotFoundError, SoldOutError
from .models import CartItem, LineItem, Product


class PriceCatalog(Protocol):
    def get_product(self, product_id: str) -> Optional[Product]: ...


def to_minor_units(price: float) -> int:
    # Arrondi commercial (demi vers le haut) sur la valeur décimale saisie au catalogue
    return int((Decimal(str(price)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def describe(product: Product, label: str) -> str:
    if product.local_name:
        return f"{label} ({product.local_name})"
    return label


# module storefront.payments.cart
class CartPricingValidator:
    """
    Convertit un panier client en lignes tarifées par le catalogue.
    Validation stricte et immédiate: la première erreur annule tout le lot,
    aucune session n'est jamais construite à partir d'un panier partiellement invalide.
    """

    def __init__(self, catalog: PriceCatalog, currency: str = CHECKOUT_CURRENCY):
        self._catalog = catalog
        self._currency = currency

    def price_item(self, item: CartItem) -> LineItem:
        product = self._catalog.get_product(item.id)
        if product is None:
            raise NotFoundError(item.id)
        if product.sold_out:
            raise SoldOutError(product.name)
        tier = product.tier_for(item.size)
        if tier is None:
            raise InvalidSizeError(product.name, item.size)
        return LineItem(
            currency=self._currency,
            product_name=product.name,
            description=describe(product, tier.label),
            unit_amount=to_minor_units(tier.price),
            quantity=item.qty,
        )

    def price_cart(self, items: Sequence[CartItem]) -> List[LineItem]:
        if not items:
            raise EmptyCartError()
        return [self.price_item(item) for item in items]


def to_stripe_line_items(line_items: Sequence[LineItem]) -> List[Dict[str, Any]]:
    """
    Construit les line_items Stripe (price_data) à partir des lignes validées.
    - unit_amount en centimes, product_data.name/description depuis le catalogue.
    """
    return [
        {
            "price_data": {
                "currency": li.currency,
                "product_data": {
                    "name": li.product_name,
                    "description": li.description,
                },
                "unit_amount": li.unit_amount,
            },
            "quantity": li.quantity,
        }
        for li in line_items
    ]
