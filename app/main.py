# app/main.py
from contextlib import asynccontextmanager
import logging

from fastapi.middleware.cors import CORSMiddleware
from fastapi import FastAPI

from app.core.config import get_settings

# Routers
from app.routers.inspirations import router as inspirations_router

settings = get_settings()

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger("uvicorn")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
      - Report whether Supabase is configured or the app serves demo data.

    Shutdown:
      - No special cleanup needed; SDK clients are created lazily.
    """
    if settings.is_supabase_configured:
        logger.info("🔄 Startup: Supabase configured at %s", settings.SUPABASE_URL)
    else:
        logger.warning("⚠️ Startup: Supabase not configured, running in demo mode")
    yield


app = FastAPI(
    title=settings.PROJECT_NAME or "Inspiration Wall API",
    version="0.1.0",
    lifespan=lifespan,
)


# --- CORS configuration ---
origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://[::1]:3000",
    settings.SITE_URL,
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Versioned API prefix, e.g. /api/v1
app.include_router(inspirations_router, prefix=settings.API_V1_STR)


@app.get("/")
def root():
    """Health check endpoint."""
    return {
        "status": "ok",
        "service": "inspiration-wall",
        "demo_mode": not settings.is_supabase_configured,
    }
