"""
Accès aux données pour la feature 'orders' (Supabase / PostgREST).
- orders: une ligne par session Checkout (contrainte UNIQUE sur stripe_session_id)
- analytics_events: faits en ajout seul
Les erreurs Supabase sont logguées puis levées en UpstreamError: c'est
l'appelant qui décide si l'échec est bloquant (voir orders.reconciler).
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from supabase import Client

from artshop.errors import UpstreamError

logger = logging.getLogger(__name__)

ORDERS_TABLE = "orders"
ANALYTICS_TABLE = "analytics_events"

def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

def _quote(value: str) -> str:
    """Encadre une valeur pour un filtre PostgREST or=(...) (virgules, points, parenthèses)."""
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class OrderRepository:
    def __init__(self, client: Client):
        self.client = client

    def insert_if_absent(self, row: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Insère la commande si aucune ligne n'existe pour row["stripe_session_id"].
        Upsert ON CONFLICT DO NOTHING: atomique côté Postgres, sans lecture préalable.
        Retour: la ligne créée, ou None si la session était déjà enregistrée.
        """
        try:
            res = (
                self.client
                .table(ORDERS_TABLE)
                .upsert(row, on_conflict="stripe_session_id", ignore_duplicates=True)
                .execute()
            )
        except Exception as e:
            logger.exception("orders.repository.insert_if_absent failed session_id=%s", row.get("stripe_session_id"))
            raise UpstreamError(f"Failed to save order: {e}") from e
        rows = res.data or []
        return rows[0] if isinstance(rows, list) and rows else None

    def mark_failed_by_payment_intent(self, payment_intent_id: str) -> int:
        """Passe en 'failed' les commandes liées au PaymentIntent; retourne le nombre de lignes touchées."""
        try:
            res = (
                self.client
                .table(ORDERS_TABLE)
                .update({"status": "failed", "updated_at": now_iso()})
                .eq("stripe_payment_intent", payment_intent_id)
                .execute()
            )
        except Exception as e:
            logger.exception("orders.repository.mark_failed_by_payment_intent failed payment_intent=%s", payment_intent_id)
            raise UpstreamError(f"Failed to update order: {e}") from e
        return len(res.data or [])

    def list_orders(self, user_id: Optional[str] = None, email: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Commandes d'un client, plus récentes d'abord.
        - user_id + email: user_id = ? OR customer_email = ?
        - user_id seul: user_id = ?
        - email seul: customer_email = ?
        """
        query = self.client.table(ORDERS_TABLE).select("*")
        if user_id and email:
            query = query.or_(f"user_id.eq.{_quote(user_id)},customer_email.eq.{_quote(email)}")
        elif user_id:
            query = query.eq("user_id", user_id)
        else:
            query = query.eq("customer_email", email)
        try:
            res = query.order("created_at", desc=True).execute()
        except Exception as e:
            logger.exception("orders.repository.list_orders failed user_id=%s email=%s", user_id, email)
            raise UpstreamError(f"Failed to fetch orders: {e}") from e
        return res.data or []


class AnalyticsRepository:
    def __init__(self, client: Client):
        self.client = client

    def track(self, event_type: str, order_id: str, price: Optional[float], item_count: int) -> None:
        try:
            (
                self.client
                .table(ANALYTICS_TABLE)
                .insert({
                    "event_type": event_type,
                    "order_id": order_id,
                    "price": price,
                    "item_count": item_count,
                    "created_at": now_iso(),
                })
                .execute()
            )
        except Exception as e:
            raise UpstreamError(f"Failed to track analytics: {e}") from e
