"""
Dépendances FastAPI: construisent les clients Stripe/Supabase injectés dans les vues.
- Les clients Supabase sont créés à la demande et mis en cache sur app.state
  (un cache par application, pas d'état global de process)
- Les tests remplacent ces fonctions via app.dependency_overrides
"""
import logging
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Request
from supabase import Client

from artshop import config
from artshop.errors import ConfigurationError
from artshop.infra.stripe_client import StripeGateway
from artshop.infra.supabase_client import create_anon_client, create_service_client, create_user_client
from artshop.orders.repository import AnalyticsRepository, OrderRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WebhookSettings:
    secret: str
    allow_unsigned: bool = False


def _cached_client(request: Request, name: str, factory: Callable[[], Client]) -> Client:
    client = getattr(request.app.state, name, None)
    if client is None:
        client = factory()
        setattr(request.app.state, name, client)
    return client

def get_stripe_gateway() -> StripeGateway:
    return StripeGateway(api_key=config.STRIPE_SECRET_KEY)

def get_webhook_settings() -> WebhookSettings:
    return WebhookSettings(secret=config.STRIPE_WEBHOOK_SECRET, allow_unsigned=config.ALLOW_UNSIGNED_WEBHOOKS)

def _bearer_token(request: Request) -> Optional[str]:
    auth = request.headers.get("authorization") or ""
    scheme, _, token = auth.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()

def get_order_reader(request: Request) -> OrderRepository:
    """
    Lectures via la clé anon, RLS actif.
    - Authorization: Bearer <access token Supabase>: le client porte le JWT de l'appelant,
      la policy orders_select_own expose ses commandes (user_id ou email du JWT)
    - sans jeton: client anon partagé, seules les lignes publiques selon RLS sont visibles
    """
    token = _bearer_token(request)
    if token:
        return OrderRepository(create_user_client(token))
    return OrderRepository(_cached_client(request, "supabase_anon", create_anon_client))

def get_order_writer(request: Request) -> OrderRepository:
    """Écritures via la clé service (bypass RLS), requise par le webhook."""
    return OrderRepository(_cached_client(request, "supabase_service", create_service_client))

def get_analytics(request: Request) -> AnalyticsRepository:
    return AnalyticsRepository(_cached_client(request, "supabase_service", create_service_client))

def get_optional_order_writer(request: Request) -> Optional[OrderRepository]:
    """
    Variante tolérante: sans clé service, None.
    - /api/order-status: pas de réconciliation
    - webhook: l'absence de store n'est signalée qu'après vérification de la signature
    """
    try:
        return get_order_writer(request)
    except ConfigurationError as e:
        logger.warning("Order writer unavailable: %s", e)
        return None

def get_optional_analytics(request: Request) -> Optional[AnalyticsRepository]:
    try:
        return get_analytics(request)
    except ConfigurationError:
        return None
