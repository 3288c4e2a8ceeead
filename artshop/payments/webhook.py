"""
Vérification et typage des événements webhook Stripe.
- verify_event: authentifie le body brut (octets exacts) via l'en-tête Stripe-Signature
- to_typed_event: projette l'événement sur un variant typé (models.WebhookEvent)
"""
import json
import logging
from typing import Any, Dict, Optional

import stripe
from pydantic import ValidationError as PydanticValidationError

from artshop.errors import AuthenticationError, ConfigurationError, ValidationError
from artshop.payments.models import (
    CheckoutCompletedEvent,
    CheckoutSession,
    IgnoredEvent,
    PaymentFailedEvent,
    WebhookEvent,
)

logger = logging.getLogger(__name__)

COMPLETED_EVENT_TYPES = {
    "checkout.session.completed",
    "checkout.session.async_payment_succeeded",
}
FAILED_EVENT_TYPES = {
    "payment_intent.payment_failed",
    "checkout.session.async_payment_failed",
}

# module artshop.payments.webhook
def verify_event(
    payload: bytes,
    sig_header: Optional[str],
    secret: str,
    allow_unsigned: bool = False,
) -> Dict[str, Any]:
    """
    Authentifie et parse un événement Stripe.
    - secret présent: la signature doit couvrir exactement `payload` (sinon AuthenticationError, 400)
    - secret absent + allow_unsigned: parse sans vérification (mode dev, warning à chaque appel)
    - secret absent sans allow_unsigned: ConfigurationError (500), l'événement n'est pas traité
    Retour: l'événement sous forme de dict.
    """
    try:
        text = payload.decode("utf-8") if isinstance(payload, (bytes, bytearray)) else payload
    except UnicodeDecodeError as e:
        raise ValidationError("Webhook Error: payload is not valid UTF-8") from e

    if secret:
        if not sig_header:
            logger.error("Webhook signature verification failed: missing Stripe-Signature header")
            raise AuthenticationError("Webhook Error: missing Stripe-Signature header")
        try:
            stripe.WebhookSignature.verify_header(
                text, sig_header, secret, tolerance=stripe.Webhook.DEFAULT_TOLERANCE
            )
        except stripe.SignatureVerificationError as e:
            logger.error("Webhook signature verification failed: %s", e)
            raise AuthenticationError(f"Webhook Error: {e}") from e
    elif allow_unsigned:
        # Dev only (non sécurisé)
        logger.warning("Webhook signature not verified - STRIPE_WEBHOOK_SECRET not set (ALLOW_UNSIGNED_WEBHOOKS=1)")
    else:
        logger.error("STRIPE_WEBHOOK_SECRET is not configured; refusing unsigned webhook")
        raise ConfigurationError("Webhook secret is not configured")

    try:
        event = json.loads(text)
    except ValueError as e:
        raise ValidationError("Webhook Error: invalid JSON payload") from e
    if not isinstance(event, dict):
        raise ValidationError("Webhook Error: invalid event payload")
    return event

def _payment_intent_id(obj: Dict[str, Any]) -> Optional[str]:
    pi = obj.get("payment_intent")
    if isinstance(pi, dict):
        return pi.get("id")
    return pi

def to_typed_event(raw: Dict[str, Any]) -> WebhookEvent:
    """
    Projette un événement Stripe sur un variant typé.
    Les types non gérés ou de forme inattendue deviennent IgnoredEvent (loggués, acquittés).
    """
    event_type = str(raw.get("type") or "")
    event_id = raw.get("id")
    try:
        obj = (raw.get("data") or {}).get("object") or {}
        if event_type in COMPLETED_EVENT_TYPES:
            return CheckoutCompletedEvent(id=event_id, type=event_type, session=CheckoutSession.from_stripe(obj))
        if event_type == "payment_intent.payment_failed":
            return PaymentFailedEvent(id=event_id, type=event_type, payment_intent_id=obj["id"])
        if event_type == "checkout.session.async_payment_failed":
            pi_id = _payment_intent_id(obj)
            if not pi_id:
                return IgnoredEvent(id=event_id, type=event_type, reason="no payment_intent")
            return PaymentFailedEvent(id=event_id, type=event_type, payment_intent_id=pi_id)
    except (AttributeError, KeyError, TypeError, PydanticValidationError):
        logger.exception("payments.webhook malformed event id=%s type=%s", event_id, event_type)
        return IgnoredEvent(id=event_id, type=event_type, reason="malformed")

    logger.info("Unhandled event type: %s", event_type)
    return IgnoredEvent(id=event_id, type=event_type)
