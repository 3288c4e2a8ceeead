"""
Vue normalisée d'une commande, renvoyée par /api/order-status.
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from artshop.payments.models import ShippingAddress


class OrderView(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    order_id: str = Field(alias="orderId")
    payment_intent: Optional[str] = Field(default=None, alias="paymentIntent")
    customer_email: Optional[str] = Field(default=None, alias="customerEmail")
    total_amount: Optional[float] = Field(default=None, alias="totalAmount")
    currency: Optional[str] = None
    shipping_address: Optional[ShippingAddress] = Field(default=None, alias="shippingAddress")
    items: List[Dict[str, Any]] = Field(default_factory=list)
    payment_status: Optional[str] = Field(default=None, alias="paymentStatus")

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)
