from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from ride_planner.api.planner.reorder import router as reorder_router
from ride_planner.api.planner.sync_completions import router as sync_completions_router
from ride_planner.config.settings import settings
from ride_planner.core.logger import setup_logger
from ride_planner.db.models import Base
from ride_planner.db.session import get_engine

setup_logger(
    level=settings.log_level,
    log_file=settings.log_file,
    rotation=settings.log_rotation,
    retention=settings.log_retention,
)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Ensure database tables exist before serving requests."""
    logger.info("Ensuring database tables exist")
    Base.metadata.create_all(bind=get_engine())
    logger.info("Database tables verified")
    yield


app = FastAPI(title="Ride Planner", lifespan=lifespan)
app.include_router(sync_completions_router)
app.include_router(reorder_router)


@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}
