"""FastAPI application setup for the trip-weather service."""

import asyncio
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI

from .api import router as api_router
from .config import settings
from .session_manager import close_all_sessions, reap_expired_sessions
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="tripweather/main")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Reap expired trips while running; close every trip on shutdown."""
    reaper = asyncio.create_task(reap_expired_sessions(settings.session_sweep_seconds))
    yield
    logger.info("Shutting down; closing trip sessions")
    reaper.cancel()
    with suppress(asyncio.CancelledError):
        await reaper
    await close_all_sessions()


app = FastAPI(title="Trip Weather", lifespan=lifespan)


@app.get("/health")
def health():
    """Liveness probe."""
    return {"status": "ok"}


# API routes
app.include_router(api_router, prefix="/v1")
