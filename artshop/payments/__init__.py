"""
Module 'payments' (feature-first): point d'entrée public.
Réunit logique panier, metadata Stripe, vérification des webhooks et création de session Checkout.
"""

from .cart import ensure_cart, to_minor_units, to_line_items, make_metadata
from .metadata import extract_metadata
from .models import CheckoutSession, ShippingAddress, WebhookEvent
from .webhook import verify_event, to_typed_event
from .service import create_checkout_session

__all__ = [
    # cart
    "ensure_cart",
    "to_minor_units",
    "to_line_items",
    "make_metadata",
    # metadata
    "extract_metadata",
    # models
    "CheckoutSession",
    "ShippingAddress",
    "WebhookEvent",
    # webhook
    "verify_event",
    "to_typed_event",
    # services
    "create_checkout_session",
]
