"""Couche service de la lecture des commandes.
- get_order_status: lecture live de la session Stripe (source de vérité) + réconciliation opportuniste
- list_orders: commandes persistées d'un client, plus récentes d'abord
"""
from typing import Any, Dict, List, Optional
import logging

from artshop.errors import UpstreamError, ValidationError
from artshop.infra.stripe_client import StripeGateway
from artshop.orders import reconciler
from artshop.orders.models import OrderView
from artshop.orders.repository import AnalyticsRepository, OrderRepository
from artshop.payments.metadata import extract_metadata
from artshop.payments.models import CheckoutSession

logger = logging.getLogger(__name__)

SESSION_EXPAND = ["line_items", "payment_intent"]

def get_order_status(
    session_id: Optional[str],
    *,
    gateway: StripeGateway,
    orders: Optional[OrderRepository] = None,
    analytics: Optional[AnalyticsRepository] = None,
) -> OrderView:
    """Statut d'une session Checkout.
    - ValidationError si session_id absent, NotFoundError si Stripe ne connaît pas la session
    - La réconciliation est un effet de bord: son échec est loggué, la réponse reste 200
    """
    session_id = (session_id or "").strip()
    if not session_id:
        raise ValidationError("Session ID required")

    raw = gateway.retrieve_checkout_session(session_id, expand=SESSION_EXPAND)
    session = CheckoutSession.from_stripe(raw)

    if orders is None:
        logger.warning("orders.get_order_status session_id=%s: store not configured, skipping reconciliation", session.id)
    else:
        try:
            return reconciler.reconcile_completed(session, orders, analytics)
        except UpstreamError:
            logger.exception("orders.get_order_status reconciliation failed session_id=%s", session.id)

    _, items = extract_metadata(session.metadata)
    return reconciler.build_order_view(session, items)

def list_orders(
    *,
    orders: OrderRepository,
    user_id: Optional[str] = None,
    email: Optional[str] = None,
) -> List[Dict[str, Any]]:
    user_id = (user_id or "").strip() or None
    email = (email or "").strip() or None
    if not user_id and not email:
        raise ValidationError("user_id or email required")
    return orders.list_orders(user_id=user_id, email=email)
