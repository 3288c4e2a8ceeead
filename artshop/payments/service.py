"""
Cas d'usage 'payments': création de la session Stripe Checkout à partir du panier.
"""
import logging
import uuid
from typing import Any, Dict, List, Optional

from artshop import config
from artshop.errors import CheckoutError, UpstreamError, ValidationError
from artshop.infra.stripe_client import StripeGateway
from artshop.payments import cart as cart_logic

logger = logging.getLogger(__name__)

ALLOWED_SHIPPING_COUNTRIES = [
    "US", "CA", "GB", "AU", "DE", "FR", "NL", "BE", "AT",
    "CH", "ES", "IT", "IE", "SE", "NO", "DK", "FI", "NZ",
]

def _shipping_rate(display_name: str, amount: int, min_days: int, max_days: int, currency: str) -> Dict[str, Any]:
    return {
        "shipping_rate_data": {
            "type": "fixed_amount",
            "fixed_amount": {"amount": amount, "currency": currency},
            "display_name": display_name,
            "delivery_estimate": {
                "minimum": {"unit": "business_day", "value": min_days},
                "maximum": {"unit": "business_day", "value": max_days},
            },
        },
    }

def shipping_options(currency: str) -> List[Dict[str, Any]]:
    """Deux tarifs fixes: standard gratuit (5-10 j ouvrés), express 15.00 (2-4 j ouvrés)."""
    return [
        _shipping_rate("Standard Shipping", 0, 5, 10, currency),
        _shipping_rate("Express Shipping", 1500, 2, 4, currency),
    ]

def redirect_urls(origin: Optional[str]) -> Dict[str, str]:
    """URLs de retour; {CHECKOUT_SESSION_ID} est substitué par Stripe."""
    base = (origin or config.DEFAULT_ORIGIN).rstrip("/")
    return {
        "success_url": f"{base}?checkout=success&session_id={{CHECKOUT_SESSION_ID}}",
        "cancel_url": f"{base}?checkout=cancel",
    }

def normalize_user_id(user_id: Any) -> Optional[str]:
    """
    userId vient du client: doit être un UUID (colonne orders.user_id), sinon 400.
    Un userId invalide accepté ici ferait échouer l'écriture de la commande au webhook.
    """
    if user_id is None or user_id == "":
        return None
    try:
        return str(uuid.UUID(str(user_id)))
    except ValueError as e:
        raise ValidationError("Invalid userId") from e

def create_checkout_session(
    *,
    gateway: StripeGateway,
    cart: Any,
    origin: Optional[str] = None,
    customer_email: Optional[str] = None,
    user_id: Optional[str] = None,
) -> Dict[str, str]:
    """
    Prépare et crée la session Stripe Checkout.
    Étapes:
      1) Panier vide ou userId non UUID -> ValidationError (400), avant tout appel
      2) Clé Stripe absente -> ConfigurationError (500), sans appel sortant
      3) line_items + metadata (panier sérialisé) + livraison + pays autorisés
      4) Échec Stripe ou article mal formé -> UpstreamError (500)
    Retour: {"url": ..., "sessionId": ...}
    """
    items = cart_logic.ensure_cart(cart)
    user_id = normalize_user_id(user_id)
    gateway.require_key()

    logger.info("Using Stripe key starting with: %s", gateway.key_mode)
    currency = config.CHECKOUT_CURRENCY
    try:
        line_items = cart_logic.to_line_items(items, currency=currency)
        metadata = cart_logic.make_metadata(items, user_id=user_id)
    except (KeyError, TypeError, ValueError, ArithmeticError, AttributeError) as e:
        logger.error("payments.create_checkout_session invalid cart item: %r", e)
        raise UpstreamError(f"Invalid cart item: {e}") from e

    params: Dict[str, Any] = {
        "payment_method_types": ["card"],
        "mode": "payment",
        "line_items": line_items,
        "shipping_address_collection": {"allowed_countries": ALLOWED_SHIPPING_COUNTRIES},
        "shipping_options": shipping_options(currency),
        "metadata": metadata,
        **redirect_urls(origin),
    }
    if customer_email:
        params["customer_email"] = customer_email

    logger.info("Creating checkout session with %s items", len(line_items))
    try:
        session = gateway.create_checkout_session(**params)
    except CheckoutError:
        raise
    except Exception as e:
        logger.exception("Stripe checkout error")
        raise UpstreamError(str(e)) from e

    logger.info("Checkout session created: %s", session.get("id"))
    return {"url": session.get("url"), "sessionId": session.get("id")}
