"""
Main entry point for the race weather web service
"""
import os
import sys
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from apscheduler.schedulers.background import BackgroundScheduler

from . import __version__
from .config import load_env_vars, get_settings
from .api.routes import router as weather_router, record_live_reading
from .database.connection import get_database, close_connection
from .history import HistoryStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger("racewx")

# Global scheduler
scheduler = None


def poll_station():
    """Scheduled job: record one live reading, logging rather than raising"""
    try:
        settings = get_settings()
        history = HistoryStore(get_database(settings), max_size=settings.history_max)
        reading = record_live_reading(history, settings)
        logger.info(f"Recorded reading at {reading['display']['ts']}")
    except Exception as e:
        logger.exception(f"Error in scheduled station poll: {e}")


def configure_scheduler(settings):
    """Configure and start the background scheduler that polls the station"""
    scheduler = BackgroundScheduler()

    try:
        scheduler.add_job(
            poll_station,
            'interval',
            seconds=settings.poll_interval_seconds,
            id='poll_station',
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        logger.info(f"Station poll scheduled every {settings.poll_interval_seconds}s")
        return scheduler
    except Exception as e:
        logger.exception(f"Failed to configure scheduler: {e}")
        return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifecycle manager for the FastAPI application
    Handles startup and shutdown tasks
    """
    load_env_vars()
    settings = get_settings()

    try:
        HistoryStore(get_database(settings), max_size=settings.history_max).setup_indexes()
    except ConnectionError as e:
        logger.error(f"History storage unavailable at startup: {e}")

    global scheduler
    scheduler = configure_scheduler(settings)

    yield

    if scheduler and scheduler.running:
        scheduler.shutdown()
        logger.info("Scheduler shutdown complete")

    close_connection()
    logger.info("Database connection closed")


# Create FastAPI application
app = FastAPI(
    title="Race Weather Service",
    description="Live racing weather (ADR, density altitude, correction factor) from a WeatherLink station",
    version=__version__,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(weather_router)


@app.get("/")
async def root():
    """Root endpoint that returns service information"""
    return {
        "service": "Race Weather Service",
        "version": __version__,
        "status": "running",
        "scheduler_active": scheduler.running if scheduler else False
    }


if __name__ == "__main__":
    import uvicorn
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run("racewx_app.server:app", host="0.0.0.0", port=port)
