# homelab_dash/main.py
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import configure_logging, get_settings
from .services.backups import router as backups_router
from .services.beszel import router as beszel_router
from .services.jellyfin import router as jellyfin_router
from .services.journey import router as journey_router
from .services.markets import router as markets_router
from .services.qbittorrent import router as qbittorrent_router
from .services.rss import router as rss_router
from .services.storage import router as storage_router
from .services.todos import router as todos_router
from .services.uptime import router as uptime_router
from .services.weather import router as weather_router
from .utils.tokens import TokenCaches

logger = logging.getLogger("uvicorn.error")
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    app.state.http_client = httpx.AsyncClient(timeout=settings.http_timeout)
    app.state.pve_client = httpx.AsyncClient(timeout=settings.http_timeout, verify=settings.pve_verify_ssl)
    app.state.tokens = TokenCaches()
    logger.info("Homelab dashboard API started (timezone %s)", settings.timezone)
    yield
    await app.state.http_client.aclose()
    await app.state.pve_client.aclose()
    logger.info("Homelab dashboard API shutdown")


app = FastAPI(title="Homelab Dashboard API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def home():
    return {"service": "homelab-dash", "status": "ok"}


@app.get("/ping")
def ping():
    return {"status": "ok"}


app.include_router(journey_router)
app.include_router(todos_router)
app.include_router(rss_router)
app.include_router(markets_router)
app.include_router(weather_router)
app.include_router(uptime_router)
app.include_router(jellyfin_router)
app.include_router(qbittorrent_router)
app.include_router(beszel_router)
app.include_router(storage_router)
app.include_router(backups_router)
