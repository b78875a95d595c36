# app/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI

from app.core.config import get_settings
from app.core.http_client import create_http_client
from app.database import create_db_and_tables, engine
from app.services.session_service import CartSessionRegistry

# Import models so SQLModel metadata is populated before create_all()
from app.models import local_storage as _local_storage_models  # noqa: F401


# Routers
from app.routers.cart import router as cart_router
from app.routers.products import router as products_router
from app.routers.session import router as session_router

settings = get_settings()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Create the local key-value store tables.
      - Open the shared backend HTTP client and the cart session registry.

    Shutdown:
      - Close the HTTP client.
    """
    logger.info("🔄 Startup: Preparing local cart store...")
    try:
        create_db_and_tables()
        logger.info("✅ Startup: local cart store ready.")
    except Exception as e:
        logger.error(f"❌ Startup: local cart store FAILED: {e}")
        raise

    app.state.http = create_http_client()
    app.state.cart_sessions = CartSessionRegistry(app.state.http, engine)
    logger.info(f"Backend API: {settings.backend_base_url}")
    try:
        yield
    finally:
        await app.state.http.aclose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan,
)


# --- CORS configuration ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Versioned API prefix, e.g. /api/v1
app.include_router(cart_router, prefix=settings.API_V1_STR)
app.include_router(products_router, prefix=settings.API_V1_STR)
app.include_router(session_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "pharmacy-storefront-cart"}
