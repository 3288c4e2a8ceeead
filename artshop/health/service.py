from typing import Any, Callable, Dict, Optional
from urllib.parse import urlparse
import socket

from supabase import Client

from artshop import config
from artshop.infra.supabase_client import create_anon_client
from artshop.orders.repository import ANALYTICS_TABLE, ORDERS_TABLE

def _check_table(client: Client, name: str) -> Dict[str, Any]:
    try:
        res = client.table(name).select("*").limit(1).execute()
        cnt = len(res.data or [])
        return {"ok": True, "rows": cnt}
    except Exception as e:
        return {"ok": False, "error": str(e)}

def health_supabase_info(client_factory: Optional[Callable[[], Client]] = None) -> Dict[str, Any]:
    effective_url = config.SUPABASE_URL
    parsed = urlparse(effective_url) if effective_url else None
    hostname = parsed.hostname if parsed else None
    dns_ok = None
    dns_error = None
    if hostname:
        try:
            socket.getaddrinfo(hostname, 443)
            dns_ok = True
        except OSError as e:
            dns_ok = False
            dns_error = str(e)

    info: Dict[str, Any] = {
        "supabase_url": effective_url,
        "hostname": hostname,
        "dns_ok": dns_ok,
        "dns_error": dns_error,
        "connect_ok": False,
        "error": None,
        "tables": {},
    }
    try:
        client = (client_factory or create_anon_client)()
        for t in (ORDERS_TABLE, ANALYTICS_TABLE):
            info["tables"][t] = _check_table(client, t)
        info["connect_ok"] = True
    except Exception as e:
        info["error"] = str(e)
    return info

def health_stripe_info() -> Dict[str, Any]:
    # Jamais les valeurs des secrets: seulement leur présence et le mode de la clé
    return {
        "secret_key_set": bool(config.STRIPE_SECRET_KEY),
        "key_mode": config.STRIPE_SECRET_KEY[:7] or None,
        "webhook_secret_set": bool(config.STRIPE_WEBHOOK_SECRET),
        "allow_unsigned_webhooks": config.ALLOW_UNSIGNED_WEBHOOKS,
        "service_key_set": bool(config.SUPABASE_SERVICE_KEY),
    }
