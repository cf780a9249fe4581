#!/usr/bin/env python3
"""
Configuration for the race weather application

Settings come from environment variables. A .env file at the project root (or
in the working directory) is loaded first so local runs need no exports.
"""
import os
import logging
from typing import NamedTuple, Optional

from dotenv import load_dotenv

from .weather_calc import DA_CALIBRATION, DensityAltitudeCalibration

logger = logging.getLogger("racewx.config")

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

DEFAULT_BASE_URL = "https://api.weatherlink.com/v2"
TIMESTAMP_SOURCES = ("server", "station")


class Settings(NamedTuple):
    api_key: str
    api_secret: str
    station_id: str
    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = 15.0
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "racewx"
    poll_interval_seconds: int = 60
    history_max: int = 2000
    timestamp_source: str = "server"
    da_calibration: DensityAltitudeCalibration = DA_CALIBRATION


def load_env_vars(env_path: Optional[str] = None) -> bool:
    """Load a .env file into os.environ without overriding existing values"""
    if env_path is None:
        env_path = os.path.join(PROJECT_ROOT, '.env')
        if not os.path.exists(env_path):
            env_path = os.path.join(os.getcwd(), '.env')

    if os.path.exists(env_path):
        logger.info(f"Loading environment from {env_path}")
        return load_dotenv(env_path)

    logger.debug(f"No .env file found at {env_path}")
    return False


def _env_number(environ, name, default, cast):
    raw = environ.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def get_settings(environ=None) -> Settings:
    """Build Settings from the environment (os.environ by default)"""
    if environ is None:
        environ = os.environ

    timestamp_source = environ.get('TIMESTAMP_SOURCE', 'server').strip().lower()
    if timestamp_source not in TIMESTAMP_SOURCES:
        raise ValueError(f"TIMESTAMP_SOURCE must be one of {TIMESTAMP_SOURCES}, got {timestamp_source!r}")

    history_max = _env_number(environ, 'HISTORY_MAX', 2000, int)
    if history_max < 1:
        raise ValueError("HISTORY_MAX must be at least 1")

    poll_interval = _env_number(environ, 'POLL_INTERVAL_SECONDS', 60, int)
    if poll_interval < 1:
        raise ValueError("POLL_INTERVAL_SECONDS must be at least 1")

    calibration = DensityAltitudeCalibration(
        a=_env_number(environ, 'DA_CALIBRATION_A', DA_CALIBRATION.a, float),
        b=_env_number(environ, 'DA_CALIBRATION_B', DA_CALIBRATION.b, float),
    )

    return Settings(
        api_key=environ.get('WEATHERLINK_API_KEY', ''),
        api_secret=environ.get('WEATHERLINK_API_SECRET', ''),
        station_id=environ.get('WEATHERLINK_STATION_ID', ''),
        base_url=environ.get('WEATHERLINK_BASE_URL', DEFAULT_BASE_URL).rstrip('/'),
        request_timeout=_env_number(environ, 'WEATHERLINK_TIMEOUT', 15.0, float),
        mongo_uri=environ.get('MONGO_URI', 'mongodb://localhost:27017'),
        mongo_db=environ.get('MONGO_DB', 'racewx'),
        poll_interval_seconds=poll_interval,
        history_max=history_max,
        timestamp_source=timestamp_source,
        da_calibration=calibration,
    )
