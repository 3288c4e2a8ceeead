"""
Rate limiting optionnel des endpoints publics (POST /api/checkout).
Clé = IP client (première entrée X-Forwarded-For derrière un proxy) + path.
"""
from typing import Dict, Any
import logging
import os
import time

from fastapi import Request, HTTPException
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter
from starlette.responses import Response

logger = logging.getLogger(__name__)

def _client_key(req: Request) -> str:
    forwarded = (req.headers.get("x-forwarded-for") or "").split(",")[0].strip()
    ip = forwarded or (req.client.host if req.client else "local")
    return f"ip:{ip}:{req.url.path}"

async def _identifier(req: Request) -> str:
    return _client_key(req)

def _local_window_hit(request: Request, times: int, seconds: int) -> None:
    # Fenêtre glissante en mémoire, par application et par durée de fenêtre (dev / Redis indisponible)
    now = time.time()
    key = _client_key(request)
    stores = getattr(request.app.state, "_rl_store", None)
    if stores is None:
        stores = request.app.state._rl_store = {}
    store = stores.setdefault(seconds, {})
    # Purge des clients dont la fenêtre est vide: la taille reste bornée aux clients actifs
    for stale in [k for k, ts in store.items() if not ts or now - ts[-1] >= seconds]:
        del store[stale]
    hits = [t for t in store.get(key, []) if now - t < seconds]
    if len(hits) >= times:
        raise HTTPException(status_code=429, detail="Too Many Requests")
    hits.append(now)
    store[key] = hits

def optional_rate_limit(times: int, seconds: int):
    """
    Dépendance de rate limiting « optionnelle »:
    - LOCAL_RATE_LIMIT_FALLBACK=1: fenêtre glissante en mémoire
    - app.state.rate_limit_enabled == False: aucune limite
    - sinon fastapi-limiter (Redis); une panne du limiter ne bloque pas le checkout
    """
    limiter = RateLimiter(times=times, seconds=seconds, identifier=_identifier)

    async def _dep(request: Request):
        if os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1":
            _local_window_hit(request, times, seconds)
            return
        if getattr(request.app.state, "rate_limit_enabled", None) is False:
            return
        try:
            # Response factice: le callback 429 de fastapi-limiter lève une HTTPException
            await limiter(request, Response())
        except HTTPException:
            raise
        except Exception as e:
            logger.warning("rate limiter unavailable: %s", e)
    return _dep

def rate_limit_health_info(request: Request) -> Dict[str, Any]:
    enabled = getattr(request.app.state, "rate_limit_enabled", None)
    ready = getattr(FastAPILimiter, "redis", None) is not None
    return {
        "enabled": (bool(enabled) if enabled is not None else None),
        "ready": ready,
        "backend": "redis" if ready else None,
    }
