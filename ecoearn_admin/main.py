from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from .db import init_db, dispose_db
from .routers import bins, transactions, reports, dashboard
from .core.config import get_settings
from .core.redis import ping_redis, close_redis
from .core.nats import nats_connect, nats_close

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("ecoearn_admin")

@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    # infra is optional: scanning and the dashboard work without NATS/Redis
    try:
        await nats_connect()
    except Exception as e:
        logger.warning("NATS unavailable, occupancy events will not be published: %s", e)
    if settings.rl_enabled:
        await ping_redis()
    yield
    try:
        await nats_close()
    except Exception as e:
        logger.warning("NATS drain failed: %s", e)
    await close_redis()
    await dispose_db()

app = FastAPI(title="ecoearn-admin-svc", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(bins.router)
app.include_router(transactions.router)
app.include_router(reports.router)
app.include_router(dashboard.router)

@app.get("/health")
async def health():
    return {"status": "ok", "service": "ecoearn-admin-svc"}

Instrumentator().instrument(app).expose(app)
