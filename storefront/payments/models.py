"""
Schémas du checkout: catalogue (lecture seule), panier client, lignes tarifées.
Les requêtes HTTP sont validées ici avant tout appel externe.
"""
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field


class PriceTier(BaseModel):
    label: str
    price: float


class Product(BaseModel):
    id: str
    name: str
    local_name: Optional[str] = None
    sold_out: bool = False
    prices: List[PriceTier] = Field(default_factory=list)

    def tier_for(self, label: str) -> Optional[PriceTier]:
        return next((tier for tier in self.prices if tier.label == label), None)


class CartItem(BaseModel):
    # Pas de champ prix: le client choisit un palier, jamais son montant
    id: str = Field(min_length=1)
    size: str
    qty: int = Field(gt=0)


class LineItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    currency: str
    product_name: str
    description: str
    unit_amount: int
    quantity: int


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    items: List[CartItem] = Field(default_factory=list)
    customer_email: Optional[EmailStr] = Field(default=None, alias="customerEmail")
    user_id: Optional[str] = Field(default=None, alias="userId")


class CheckoutResponse(BaseModel):
    url: str
