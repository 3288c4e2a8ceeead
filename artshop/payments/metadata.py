"""
Désérialisation des métadonnées Stripe (user_id, cart).
"""
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

# module artshop.payments.metadata
def extract_metadata(metadata: Optional[Dict[str, Any]]) -> Tuple[Optional[str], List[Dict[str, Any]]]:
    """
    Extrait (user_id, cart) depuis session.metadata.
    - cart est un JSON sérialisé (voir cart.make_cart_snapshot)
    - Tolérant aux erreurs: un JSON invalide, ou qui n'est pas une liste d'objets,
      est loggué et donne (user_id, [])
    """
    meta = metadata or {}
    user_id = meta.get("user_id") or None
    cart_json = meta.get("cart")
    if not cart_json:
        return user_id, []
    try:
        cart = json.loads(cart_json)
    except (TypeError, ValueError):
        logger.exception("payments.metadata: failed to parse cart metadata")
        return user_id, []
    if not isinstance(cart, list):
        logger.error("payments.metadata: cart metadata is not a list (type=%s)", type(cart).__name__)
        return user_id, []
    if not all(isinstance(item, dict) for item in cart):
        logger.error("payments.metadata: cart metadata contains non-object entries")
        return user_id, []
    return user_id, cart
