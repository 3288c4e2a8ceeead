"""
Lifespan FastAPI: ressources partagées de l'API checkout.
- Démarrage: rate limiting de POST /api/checkout (fastapi-limiter sur Redis)
    DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS=1  pas de limiter (tests)
    USE_FAKE_REDIS_FOR_TESTS=1                fakeredis à la place de Redis
    LOCAL_RATE_LIMIT_FALLBACK=1               fenêtre en mémoire si Redis est injoignable
- Arrêt: fermeture de Redis et oubli des clients Supabase mis en cache (artshop.dependencies)
"""
import os
import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI
from fastapi_limiter import FastAPILimiter
from redis import asyncio as aioredis

try:
    from fakeredis.aioredis import FakeRedis  # extra [test]
except ImportError:
    FakeRedis = None

logger = logging.getLogger("uvicorn.error")

def _redis_connection() -> Any:
    if os.getenv("USE_FAKE_REDIS_FOR_TESTS") == "1":
        if FakeRedis is None:
            raise RuntimeError("USE_FAKE_REDIS_FOR_TESTS=1 mais fakeredis n'est pas installé.")
        return FakeRedis(decode_responses=True)
    url = os.getenv("RATE_LIMIT_REDIS_URL", "redis://127.0.0.1:6379/0")
    return aioredis.from_url(url, encoding="utf-8", decode_responses=True)

async def _start_rate_limiter(app: FastAPI) -> Optional[Any]:
    """Retourne la connexion Redis ouverte (None si le limiter n'utilise pas Redis)."""
    if os.getenv("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS") == "1":
        app.state.rate_limit_enabled = False
        logger.info("Rate limiting disabled by DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS")
        return None
    conn = None
    try:
        conn = _redis_connection()
        await FastAPILimiter.init(conn)
    except Exception as e:
        # Redis absent: fallback mémoire si demandé, sinon checkout non limité
        fallback = os.getenv("LOCAL_RATE_LIMIT_FALLBACK") == "1"
        app.state.rate_limit_enabled = fallback
        logger.warning("Rate limiter init failed (%s); %s", e, "local fallback" if fallback else "disabled")
        return conn
    app.state.rate_limit_enabled = True
    logger.info("Rate limiting enabled")
    return conn

@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.supabase_anon = None
    app.state.supabase_service = None
    redis_conn = await _start_rate_limiter(app)

    yield

    app.state.supabase_anon = None
    app.state.supabase_service = None
    if redis_conn is not None:
        try:
            await redis_conn.close()
        except Exception as e:
            logger.warning("Redis close failed: %s", e)
