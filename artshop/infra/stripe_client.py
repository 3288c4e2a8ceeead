"""
Adaptateur Stripe: centralise les appels et la configuration Stripe.
La clé est passée à chaque appel (api_key=...) plutôt que posée sur le module
stripe, afin que plusieurs gateways (ou un faux en tests) puissent coexister.
"""
import logging
from typing import Any, Dict, List, Mapping, Optional

import stripe

from artshop.errors import ConfigurationError, NotFoundError, UpstreamError

logger = logging.getLogger(__name__)

# Pas de télémétrie vers Stripe (latences des requêtes)
stripe.enable_telemetry = False


def _to_plain(value: Any) -> Any:
    """
    Convertit récursivement les StripeObject en dict/list natifs.
    Les SDK récents ne font plus de StripeObject un dict: on passe par to_dict().
    """
    if isinstance(value, stripe.StripeObject):
        value = value.to_dict()
    if isinstance(value, Mapping):
        return {k: _to_plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_plain(v) for v in value]
    return value


class StripeGateway:
    def __init__(self, api_key: str):
        self.api_key = api_key or ""

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @property
    def key_mode(self) -> str:
        # "sk_test" / "sk_live": sûr à logguer, n'expose pas la clé
        return self.api_key[:7]

    def require_key(self) -> None:
        if not self.configured:
            logger.error("STRIPE_SECRET_KEY is not configured")
            raise ConfigurationError("Stripe is not configured")

    def create_checkout_session(self, **params: Any) -> Dict[str, Any]:
        """
        Crée une session Stripe Checkout.
        - params: line_items, mode, success_url, cancel_url, metadata, shipping_options, ...
        Retour: dict session (ex: {"id": "cs_test_...", "url": "https://..."})
        """
        self.require_key()
        try:
            session = stripe.checkout.Session.create(api_key=self.api_key, **params)
        except stripe.StripeError as e:
            logger.error("stripe.create_checkout_session failed: %s", getattr(e, "user_message", None) or e)
            raise UpstreamError(str(getattr(e, "user_message", None) or e)) from e
        return _to_plain(session)

    def retrieve_checkout_session(self, session_id: str, expand: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Récupère une session Stripe Checkout par son identifiant.
        - NotFoundError si Stripe ne connaît pas la session
        - UpstreamError pour toute autre erreur Stripe
        """
        self.require_key()
        try:
            session = stripe.checkout.Session.retrieve(
                session_id,
                api_key=self.api_key,
                expand=expand or [],
            )
        except stripe.InvalidRequestError as e:
            if getattr(e, "code", None) == "resource_missing" or getattr(e, "http_status", None) == 404:
                raise NotFoundError(f"Session introuvable: {session_id}") from e
            raise UpstreamError(str(e)) from e
        except stripe.StripeError as e:
            raise UpstreamError(str(e)) from e
        return _to_plain(session)
