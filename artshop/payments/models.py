"""
Types à la frontière Stripe.
Les payloads Stripe (webhook ou lecture directe) sont des dicts libres; on les
projette ici sur des modèles typés avant toute logique de réconciliation.
"""
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ShippingAddress(BaseModel):
    name: str = ""
    line1: Optional[str] = None
    line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None

    @classmethod
    def from_shipping_details(cls, details: Optional[Dict[str, Any]]) -> Optional["ShippingAddress"]:
        if not details:
            return None
        address = details.get("address") or {}
        return cls(
            name=details.get("name") or "",
            line1=address.get("line1"),
            line2=address.get("line2"),
            city=address.get("city"),
            state=address.get("state"),
            postal_code=address.get("postal_code"),
            country=address.get("country"),
        )


class CheckoutSession(BaseModel):
    """Vue typée d'une session Checkout (champs utilisés par la réconciliation)."""
    model_config = ConfigDict(extra="ignore")

    id: str
    payment_intent: Optional[str] = None
    payment_status: Optional[str] = None
    status: Optional[str] = None
    amount_total: Optional[int] = None
    currency: Optional[str] = None
    customer_email: Optional[str] = None
    shipping: Optional[ShippingAddress] = None
    shipping_cost: Optional[int] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_stripe(cls, obj: Dict[str, Any]) -> "CheckoutSession":
        """
        Projette un objet session Stripe (dict) sur le modèle.
        - payment_intent: id string, ou objet déplié (expand) dont on garde l'id
        - email: customer_details.email puis customer_email
        - adresse: shipping_details, ou collected_information.shipping_details (API récentes)
        """
        pi = obj.get("payment_intent")
        if isinstance(pi, dict):
            pi = pi.get("id")
        details = obj.get("customer_details") or {}
        shipping_details = (
            obj.get("shipping_details")
            or (obj.get("collected_information") or {}).get("shipping_details")
        )
        shipping_cost = (obj.get("shipping_cost") or {}).get("amount_total")
        return cls(
            id=obj["id"],
            payment_intent=pi,
            payment_status=obj.get("payment_status"),
            status=obj.get("status"),
            amount_total=obj.get("amount_total"),
            currency=obj.get("currency"),
            customer_email=details.get("email") or obj.get("customer_email"),
            shipping=ShippingAddress.from_shipping_details(shipping_details),
            shipping_cost=shipping_cost,
            metadata=obj.get("metadata") or {},
        )


class CheckoutCompletedEvent(BaseModel):
    kind: Literal["completed"] = "completed"
    id: Optional[str] = None
    type: str
    session: CheckoutSession


class PaymentFailedEvent(BaseModel):
    kind: Literal["payment_failed"] = "payment_failed"
    id: Optional[str] = None
    type: str
    payment_intent_id: str


class IgnoredEvent(BaseModel):
    kind: Literal["ignored"] = "ignored"
    id: Optional[str] = None
    type: str
    reason: str = "unhandled"


WebhookEvent = Union[CheckoutCompletedEvent, PaymentFailedEvent, IgnoredEvent]
