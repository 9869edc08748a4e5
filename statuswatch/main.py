# statuswatch/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from statuswatch.api.alert_rules import router as alert_rules_router
from statuswatch.api.health_checks import router as health_checks_router
from statuswatch.api.uptime import router as uptime_router
from statuswatch.config import settings
from statuswatch.workers.setup import init_workers, shutdown_workers


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    await init_workers(settings)
    yield
    await shutdown_workers()


app = FastAPI(title="statuswatch", version="0.1.0", lifespan=lifespan)

app.include_router(health_checks_router)
app.include_router(alert_rules_router)
app.include_router(uptime_router)


@app.get("/health")
async def health():
    return {"status": "healthy"}
