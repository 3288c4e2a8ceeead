"""
Fabrique des clients Supabase.
- anon: lectures soumises aux policies RLS (listing des commandes)
- service: écritures serveur (webhook, réconciliation) qui doivent bypasser RLS
Les clients ne sont pas des singletons de module: artshop.dependencies les
construit et les met en cache sur app.state.
"""
from supabase import create_client, Client

from artshop import config
from artshop.errors import ConfigurationError

def create_anon_client() -> Client:
    if not config.SUPABASE_URL or not config.SUPABASE_ANON:
        raise ConfigurationError("SUPABASE_URL/SUPABASE_ANON_KEY manquants")
    return create_client(config.SUPABASE_URL, config.SUPABASE_ANON)

def create_service_client() -> Client:
    if not config.SUPABASE_URL or not config.SUPABASE_SERVICE_KEY:
        raise ConfigurationError("SUPABASE_SERVICE_KEY manquant pour les opérations service")
    return create_client(config.SUPABASE_URL, config.SUPABASE_SERVICE_KEY)

def create_user_client(user_token: str) -> Client:
    """
    Client anon authentifié par le JWT de l'utilisateur (RLS actif: auth.uid()/auth.jwt() renseignés).
    Construit à chaque requête, jamais mis en cache.
    """
    if not config.SUPABASE_URL or not config.SUPABASE_ANON:
        raise ConfigurationError("SUPABASE_URL/SUPABASE_ANON_KEY manquants")
    client = create_client(config.SUPABASE_URL, config.SUPABASE_ANON)
    client.postgrest.auth(user_token)
    return client
