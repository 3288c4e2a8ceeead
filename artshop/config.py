# artshop.config
from pathlib import Path
import os
from dotenv import load_dotenv

# Calculer le chemin du projet puis charger .env de manière explicite
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
load_dotenv(dotenv_path=ENV_PATH, override=False)

"""
Configuration centrale de l'API checkout.

- Charge le fichier .env à la racine du projet (BASE_DIR/.env) sans écraser l'environnement du process
- Normalise et expose les secrets/URLs (Stripe, Supabase), CORS/hosts
- Le code applicatif lit `config.X` au moment de l'appel (monkeypatch possible en tests)
"""

def _clean_env(v: str) -> str:
    """
    Nettoie une valeur d'environnement:
    - supprime les espaces et guillemets (simples, doubles) et backticks
    - retourne toujours une chaîne (jamais None)
    """
    return (v or "").strip().strip("'").strip('"').strip("`")

def _flag(name: str, default: str = "false") -> bool:
    return _clean_env(os.getenv(name, default)).lower() in ("1", "true", "yes")

# Stripe: clé secrète et secret de signature des webhooks
STRIPE_SECRET_KEY = _clean_env(os.getenv("STRIPE_SECRET_KEY") or "")
STRIPE_WEBHOOK_SECRET = _clean_env(os.getenv("STRIPE_WEBHOOK_SECRET") or "")
# Dev uniquement: accepte des webhooks non signés quand STRIPE_WEBHOOK_SECRET est vide
ALLOW_UNSIGNED_WEBHOOKS = _flag("ALLOW_UNSIGNED_WEBHOOKS")

# Checkout
CHECKOUT_CURRENCY = _clean_env(os.getenv("CHECKOUT_CURRENCY") or "usd").lower()
DEFAULT_ORIGIN = _clean_env(os.getenv("DEFAULT_ORIGIN") or "https://hiper-shop.vercel.app").rstrip("/")

# Supabase: URL et clés (anon pour les lectures, service pour les écritures serveur)
SUPABASE_URL = _clean_env(os.getenv("SUPABASE_URL") or os.getenv("VITE_SUPABASE_URL") or "")
SUPABASE_ANON = _clean_env(os.getenv("SUPABASE_ANON_KEY") or os.getenv("VITE_SUPABASE_ANON_KEY") or "")
SUPABASE_SERVICE_KEY = _clean_env(os.getenv("SUPABASE_SERVICE_KEY") or os.getenv("SUPABASE_SERVICE_ROLE_KEY") or "")

# Normalisations utiles
if SUPABASE_URL and not SUPABASE_URL.startswith("http"):
    SUPABASE_URL = "https://" + SUPABASE_URL
if SUPABASE_URL.endswith("/"):
    SUPABASE_URL = SUPABASE_URL.rstrip("/")

# CORS / hosts
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
ALLOWED_HOSTS = [h.strip() for h in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",") if h.strip()]
COOKIE_SECURE = _flag("COOKIE_SECURE")

LOG_LEVEL = _clean_env(os.getenv("LOG_LEVEL") or "info").lower()
