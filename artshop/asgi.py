"""
ASGI entrypoint: expose `app` pour les process managers / déploiements.

- En production, uvicorn (ou gunicorn + UvicornWorker) importe `artshop.asgi:app`.
- Toute la configuration FastAPI est centralisée dans artshop.app_setup, ce fichier ne fait qu'exposer l'instance.
"""

from artshop.app import app

__all__ = ["app"]
