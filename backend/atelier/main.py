"""
Module principal de l'application FastAPI Atelier.

Configure l'instance FastAPI, le CORS et inclut les routeurs de l'API:
commandes, webhooks de paiement et consultation des mouvements de stock.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from atelier.config import settings
from atelier.database import create_tables, engine
from atelier.orders.router import order_router
from atelier.payments.router import webhook_router
from atelier.stock_movements.router import router as stock_movement_router

# Configurer le logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # En production le schéma est géré par migrations
    if not settings.is_production:
        await create_tables()
        logger.info("Tables vérifiées/créées au démarrage.")
    yield
    if engine is not None:
        await engine.dispose()


app = FastAPI(
    title="Atelier API",
    description="API des commandes, du stock et de la réconciliation des paiements.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Range"],
)

# ======================================================
# Inclure les routeurs
# ======================================================
app.include_router(order_router, prefix=settings.API_V1_PREFIX)
app.include_router(webhook_router, prefix=f"{settings.API_V1_PREFIX}/webhooks")
app.include_router(stock_movement_router, prefix=f"{settings.API_V1_PREFIX}/stock-movements")

logger.info(f"Application {settings.STORE_NAME} initialisée (env={settings.ENVIRONMENT}).")
