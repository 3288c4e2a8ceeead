"""
Point d'entrée principal de l'API checkout.

Usage:
    python -m artshop

Variables d'environnement lues:
- PORT: port d'écoute (par défaut 8000)
- UVICORN_RELOAD: active le reload auto en dev ("1"/"true"/"yes")
- LOG_LEVEL: niveau de logs (ex: "info", "debug")
"""
import logging
import os

import uvicorn

from artshop import config

if __name__ == "__main__":
    logging.basicConfig(
        level=config.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    port = int(os.environ.get("PORT", 8000))
    reload_flag = os.environ.get("UVICORN_RELOAD", "").lower() in ("1", "true", "yes")
    uvicorn.run(
        "artshop.asgi:app",
        host="0.0.0.0",
        port=port,
        reload=reload_flag,
        log_level=config.LOG_LEVEL.lower(),
    )
