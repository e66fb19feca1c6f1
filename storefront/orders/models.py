"""
Instantané de commande construit depuis la session Stripe payée.
Les montants viennent de Stripe (autorité après paiement), jamais du panier d'origine.
Colonnes en snake_case côté Supabase, clés camelCase côté API.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ORDER_STATUS_CONFIRMED = "confirmed"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OrderItem(_CamelModel):
    name: str = ""
    quantity: int = 0
    amount_total: float = 0.0
    currency: str = ""


class Order(_CamelModel):
    session_id: str
    payment_reference: Optional[str] = None
    customer_email: str = ""
    customer_name: str = ""
    shipping_address: Optional[Dict[str, Any]] = None
    items: List[OrderItem] = Field(default_factory=list)
    total_amount: float = 0.0
    currency: str = ""
    payment_status: str = ""
    status: str = ORDER_STATUS_CONFIRMED
    user_id: Optional[str] = None
    points_earned: int = 0
    created_at: datetime

    def to_row(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def from_minor_units(amount: Optional[int]) -> float:
    return (amount or 0) / 100


def _payment_reference(session: Dict[str, Any]) -> Optional[str]:
    intent = session.get("payment_intent")
    if isinstance(intent, dict):
        return intent.get("id")
    return intent or None


def _shipping_address(session: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    # Les versions récentes de l'API déplacent shipping_details sous collected_information
    details = session.get("shipping_details") or (session.get("collected_information") or {}).get("shipping_details")
    return (details or {}).get("address") or None


def _line_items(session: Dict[str, Any]) -> List[OrderItem]:
    data = (session.get("line_items") or {}).get("data") or []
    return [
        OrderItem(
            name=li.get("description") or "",
            quantity=int(li.get("quantity") or 0),
            amount_total=from_minor_units(li.get("amount_total")),
            currency=li.get("currency") or "",
        )
        for li in data
    ]


def session_user_id(session: Dict[str, Any]) -> Optional[str]:
    return (session.get("metadata") or {}).get("userId") or None


def build_order(
    session_id: str,
    session: Dict[str, Any],
    points_earned: int = 0,
    created_at: Optional[datetime] = None,
) -> Order:
    customer = session.get("customer_details") or {}
    return Order(
        session_id=session_id,
        payment_reference=_payment_reference(session),
        customer_email=customer.get("email") or "",
        customer_name=customer.get("name") or "",
        shipping_address=_shipping_address(session),
        items=_line_items(session),
        total_amount=from_minor_units(session.get("amount_total")),
        currency=session.get("currency") or "",
        payment_status=session.get("payment_status") or "",
        status=ORDER_STATUS_CONFIRMED,
        user_id=session_user_id(session),
        points_earned=points_earned,
        created_at=created_at or datetime.now(timezone.utc),
    )
