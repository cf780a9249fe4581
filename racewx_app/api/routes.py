"""
API routes for the race weather service
"""
import math
import logging
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from fastapi.responses import Response
from pymongo.errors import PyMongoError

from ..config import get_settings
from ..history import HistoryStore
from ..models.reading import (
    LiveResponse,
    HistoryResponse,
    ClearHistoryResponse,
    StatusInfo,
    EnvCheck,
    StationsResponse,
    PeekResponse,
    ReferenceCalculationResponse,
)
from ..reporting import (
    build_live_reading,
    reference_calculation,
    classify_staleness,
    age_seconds,
    format_age,
    export_csv,
    export_filename,
    NoReadingsError,
)
from ..weather_calc import InvalidInputsError
from ..weatherlink import fetch_current, fetch_stations, summarize_sensors, WeatherLinkError

# Configure logging
logger = logging.getLogger("racewx.api")

# Create API router
router = APIRouter(prefix="/api", tags=["weather"])


def get_db():
    """Get MongoDB database connection"""
    from ..database.connection import get_database

    # The connection is shared and closed at application shutdown
    yield get_database()


def get_history(db=Depends(get_db)):
    return HistoryStore(db, max_size=get_settings().history_max)


def get_history_provider():
    """Deferred history access; storage is only touched once a reading exists"""
    from ..database.connection import get_database

    def provide():
        settings = get_settings()
        return HistoryStore(get_database(settings), max_size=settings.history_max)

    return provide


def record_live_reading(history, settings=None):
    """Fetch, compute and store one reading for the scheduled poll job"""
    settings = settings or get_settings()
    payload = fetch_current(settings)
    reading = build_live_reading(payload, settings)
    history.add(reading)
    return reading


@router.get("/live", response_model=LiveResponse)
def get_live(history_provider=Depends(get_history_provider)):
    """
    Fetch current conditions, derive the racing numbers and store them.

    The reading is returned even when it could not be stored.
    """
    settings = get_settings()
    try:
        reading = build_live_reading(fetch_current(settings), settings)
    except (WeatherLinkError, InvalidInputsError) as e:
        logger.error(f"Live reading failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    try:
        history_provider().add(reading)
    except (ConnectionError, PyMongoError) as e:
        logger.exception(f"Could not store live reading: {e}")

    return reading


@router.get("/peek", response_model=PeekResponse)
def get_peek():
    """Which keys each sensor record carries, without the full payload"""
    try:
        return summarize_sensors(fetch_current(get_settings()))
    except WeatherLinkError as e:
        logger.error(f"Peek failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/stations", response_model=StationsResponse)
def get_stations():
    try:
        return {'stations': fetch_stations(get_settings())}
    except WeatherLinkError as e:
        logger.error(f"Station lookup failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/envcheck", response_model=EnvCheck)
def get_envcheck():
    """Report which credentials are configured without revealing them"""
    settings = get_settings()
    return EnvCheck(
        has_api_key=bool(settings.api_key),
        api_key_length=len(settings.api_key),
        has_api_secret=bool(settings.api_secret),
        api_secret_length=len(settings.api_secret),
        has_station_id=bool(settings.station_id),
        station_id=settings.station_id or None,
    )


@router.get("/test", response_model=ReferenceCalculationResponse)
def get_test_calculation():
    return ReferenceCalculationResponse(
        message="Test calculation",
        result=reference_calculation().model_dump(),
    )


@router.get("/history", response_model=HistoryResponse)
def get_history_readings(
    limit: Optional[int] = Query(None, ge=1),
    history: HistoryStore = Depends(get_history),
):
    readings = history.list(limit)
    return {'count': len(readings), 'readings': readings}


@router.delete("/history", response_model=ClearHistoryResponse)
def clear_history(history: HistoryStore = Depends(get_history)):
    return {'deleted': history.clear()}


@router.get("/history/export.csv")
def export_history_csv(
    day: Optional[date] = Query(None, alias="date"),
    history: HistoryStore = Depends(get_history),
):
    """Download one day's readings (today by default) as CSV"""
    day = day or datetime.now().date()
    try:
        text = export_csv(history.for_day(day))
    except NoReadingsError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return Response(
        content=text,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename(day)}"'},
    )


@router.get("/status", response_model=StatusInfo)
def get_status(history: HistoryStore = Depends(get_history)):
    """LIVE / STALE / OFFLINE for the newest stored reading"""
    latest = history.latest()
    last_ts = latest.get('ts') if latest else None
    age = age_seconds(last_ts)
    return StatusInfo(
        state=classify_staleness(last_ts),
        last_ts=last_ts,
        age_seconds=age if math.isfinite(age) else None,
        age_text=format_age(age),
    )
