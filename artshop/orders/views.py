# module artshop.orders.views

"""Endpoints de lecture des commandes.
- GET /api/order-status?session_id=...: statut live Stripe + réconciliation opportuniste
- GET /api/orders?user_id=...&email=...: historique persisté, plus récent d'abord
Endpoints synchrones: FastAPI les exécute dans son threadpool (SDK Stripe/Supabase bloquants).
"""
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from artshop.dependencies import (
    get_optional_analytics,
    get_optional_order_writer,
    get_order_reader,
    get_stripe_gateway,
)
from artshop.infra.stripe_client import StripeGateway
from artshop.orders import service as orders_service
from artshop.orders.repository import AnalyticsRepository, OrderRepository

router = APIRouter(prefix="/api", tags=["Orders API"])


@router.get("/order-status")
def order_status(
    session_id: Optional[str] = None,
    gateway: StripeGateway = Depends(get_stripe_gateway),
    orders: Optional[OrderRepository] = Depends(get_optional_order_writer),
    analytics: Optional[AnalyticsRepository] = Depends(get_optional_analytics),
):
    """Statut d'une session Checkout (400 sans session_id, 404 session inconnue, 500 erreur Stripe)."""
    view = orders_service.get_order_status(session_id, gateway=gateway, orders=orders, analytics=analytics)
    return JSONResponse(view.to_response())


@router.get("/orders")
def list_orders(
    user_id: Optional[str] = None,
    email: Optional[str] = None,
    orders: OrderRepository = Depends(get_order_reader),
):
    """Commandes d'un client (400 si ni user_id ni email)."""
    rows = orders_service.list_orders(orders=orders, user_id=user_id, email=email)
    return JSONResponse({"orders": rows})
