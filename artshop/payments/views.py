"""Endpoints paiement.
- POST /api/checkout: crée une session Stripe Checkout pour le panier (rate-limité)
- POST /api/webhook/stripe: reçoit les événements Stripe signés et réconcilie les commandes
Les erreurs métier (artshop.errors) sont rendues en {"error": ...} par le handler global.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from artshop.dependencies import (
    WebhookSettings,
    get_optional_analytics,
    get_optional_order_writer,
    get_stripe_gateway,
    get_webhook_settings,
)
from artshop.errors import ConfigurationError, ValidationError
from artshop.infra.stripe_client import StripeGateway
from artshop.orders import reconciler
from artshop.orders.repository import AnalyticsRepository, OrderRepository
from artshop.payments import service as payments_service
from artshop.payments.webhook import to_typed_event, verify_event
from artshop.utils.rate_limit import optional_rate_limit

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["Payments API"])

# module artshop.payments.views
@router.post("/checkout", dependencies=[Depends(optional_rate_limit(times=10, seconds=60))])
async def create_checkout(request: Request, gateway: StripeGateway = Depends(get_stripe_gateway)):
    """
    Crée une session Checkout Stripe.
    - Entrée JSON: { "cart": [ {artwork, size, frame, total}, ... ], "customerEmail"?: str, "userId"?: str }
    - Sortie: { "url": "<page Stripe>", "sessionId": "cs_..." }
    - Erreurs: 400 panier vide/JSON invalide, 500 clé Stripe absente ou erreur Stripe
    """
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError("Invalid JSON body")
    if not isinstance(body, dict):
        raise ValidationError("Invalid JSON body")

    result = await run_in_threadpool(
        payments_service.create_checkout_session,
        gateway=gateway,
        cart=body.get("cart"),
        origin=request.headers.get("origin"),
        customer_email=body.get("customerEmail"),
        user_id=body.get("userId"),
    )
    return JSONResponse(result)

@router.post("/webhook/stripe", include_in_schema=False)
async def stripe_webhook(
    request: Request,
    settings: WebhookSettings = Depends(get_webhook_settings),
    orders: Optional[OrderRepository] = Depends(get_optional_order_writer),
    analytics: Optional[AnalyticsRepository] = Depends(get_optional_analytics),
):
    """
    Webhook Stripe.
    - Body lu brut (octets exacts) pour la vérification de signature
    - 400 si signature invalide, vérifiée avant toute autre erreur de configuration
    - 500 si la clé service Supabase manque (Stripe relivrera après correction)
    - 200 {"received": true} dès que l'événement est authentifié et traité,
      même si l'écriture en base a échoué (loggué)
    """
    payload = await request.body()
    raw_event = verify_event(
        payload,
        request.headers.get("stripe-signature"),
        settings.secret,
        allow_unsigned=settings.allow_unsigned,
    )
    if orders is None:
        raise ConfigurationError("Order store is not configured")
    event = to_typed_event(raw_event)
    result = await run_in_threadpool(reconciler.handle_event, event, orders, analytics)
    return JSONResponse(result)
