"""
Logique panier pure (pas de Stripe, pas de DB).
Un article de panier est un dict envoyé par le front:
  {"artwork": {id, title, image}, "size": {name, dimensions},
   "frame": {name, label}, "total": 120.0}
Le prix est déjà agrégé par article: une ligne Stripe par article, quantité 1.
"""
import json
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from artshop.errors import ValidationError

# module artshop.payments.cart
def ensure_cart(cart: Any) -> List[Dict[str, Any]]:
    """
    Vérifie que le panier est une liste non vide.
    - Soulève ValidationError (400) si le panier est absent ou vide.
    - Ne valide pas la forme des articles (les erreurs remontent lors du mapping).
    """
    if not cart or not isinstance(cart, list):
        raise ValidationError("Cart is empty")
    return cart

def to_minor_units(total: Any) -> int:
    """
    Convertit un montant décimal en centimes, arrondi au centime le plus proche.
    Passe par str() pour éviter les artefacts float (19.99 * 100 = 1998.9999...).
    """
    cents = Decimal(str(total)) * 100
    return int(cents.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def _line_name(item: Dict[str, Any]) -> str:
    return f"{item['artwork']['title']} - {item['size']['name']}"

def _line_description(item: Dict[str, Any]) -> str:
    frame = item["frame"]
    return f"{item['size']['dimensions']} with {frame.get('label') or frame.get('name')} frame"

def to_line_items(cart: List[Dict[str, Any]], currency: str = "usd") -> List[Dict[str, Any]]:
    """
    Construit les line_items Stripe (price_data) à partir du panier.
    - name: "<titre> - <taille>", description: "<dimensions> with <cadre> frame"
    - unit_amount: total de l'article en centimes, arrondi article par article
    - quantity: toujours 1
    """
    line_items: List[Dict[str, Any]] = []
    for item in ensure_cart(cart):
        image = (item.get("artwork") or {}).get("image")
        line_items.append({
            "quantity": 1,
            "price_data": {
                "currency": currency,
                "unit_amount": to_minor_units(item["total"]),
                "product_data": {
                    "name": _line_name(item),
                    "description": _line_description(item),
                    "images": [image] if image else [],
                },
            },
        })
    return line_items

def make_cart_snapshot(cart: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Instantané compact du panier, relu par le webhook pour remplir orders.items."""
    snapshot = []
    for item in ensure_cart(cart):
        artwork = item.get("artwork") or {}
        size = item.get("size") or {}
        frame = item.get("frame") or {}
        snapshot.append({
            "artworkId": artwork.get("id"),
            "artworkTitle": artwork.get("title"),
            "artworkImage": artwork.get("image"),
            "size": size.get("name"),
            "sizeDimensions": size.get("dimensions"),
            "frame": frame.get("name"),
            "frameLabel": frame.get("label"),
            "price": item.get("total"),
        })
    return snapshot

def make_metadata(cart: List[Dict[str, Any]], user_id: Optional[str] = None) -> Dict[str, str]:
    """
    Sérialise les métadonnées Stripe associées à la session.
    Stripe n'accepte que des valeurs string: le panier est un JSON dans "cart".
    """
    metadata = {"cart": json.dumps(make_cart_snapshot(cart))}
    if user_id:
        metadata["user_id"] = str(user_id)
    return metadata
