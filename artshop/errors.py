"""
Erreurs métier de l'API checkout.
Chaque erreur porte le code HTTP à renvoyer; le rendu JSON {"error": ...}
est fait par artshop.app_setup.exceptions.
"""


class CheckoutError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(CheckoutError):
    """Entrée client absente ou invalide (4xx)."""
    status_code = 400


class AuthenticationError(CheckoutError):
    """Signature webhook invalide: 4xx, Stripe relivrera l'événement."""
    status_code = 400


class NotFoundError(CheckoutError):
    status_code = 404


class ConfigurationError(CheckoutError):
    """Secret serveur manquant; aucun appel sortant n'est tenté."""
    status_code = 500


class UpstreamError(CheckoutError):
    """Échec d'un appel Stripe ou Supabase."""
    status_code = 500
