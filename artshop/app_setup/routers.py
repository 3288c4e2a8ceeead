"""
Registre central des routers (API checkout/commandes, health).
"""
from fastapi import FastAPI
from artshop.payments import views as payments_views
from artshop.orders import views as orders_views
from artshop.health.router import router as health_router

def register_routers(app: FastAPI) -> None:
    # API
    app.include_router(payments_views.router)
    app.include_router(orders_views.router)
    # Health & monitoring
    app.include_router(health_router)
