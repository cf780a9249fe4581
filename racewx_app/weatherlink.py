#!/usr/bin/env python3
"""
WeatherLink v2 API client

Fetches current conditions and the station list, and pulls the handful of
readings the racing calculations need out of the vendor's sensor records.
Different stations expose the same quantity under different keys, so the
extractors scan every sensor/record rather than trusting a fixed layout.
"""
import math
import logging
from datetime import datetime, timezone

import requests

from .json_utils import iso_utc

logger = logging.getLogger("racewx.weatherlink")


class WeatherLinkError(Exception):
    """The WeatherLink API could not be reached or answered with an error"""


class WeatherLinkConfigError(WeatherLinkError):
    """Credentials or station id are missing"""


class MissingReadingError(WeatherLinkError):
    """The payload does not carry a reading the calculations need"""


def _get(settings, path, error_label):
    url = f"{settings.base_url}{path}"
    logger.info(f"Calling WeatherLink API: {url}")
    try:
        response = requests.get(
            url,
            params={'api-key': settings.api_key},
            headers={
                'X-Api-Secret': settings.api_secret,
                'Cache-Control': 'no-store',
            },
            timeout=settings.request_timeout,
        )
    except requests.RequestException as e:
        raise WeatherLinkError(f"{error_label} request failed: {e}") from e

    if not response.ok:
        raise WeatherLinkError(f"{error_label} HTTP {response.status_code}: {response.text}")

    return response.json()


def fetch_current(settings):
    """Fetch the current conditions payload for the configured station"""
    if not settings.api_key or not settings.api_secret or not settings.station_id:
        raise WeatherLinkConfigError("Missing WEATHERLINK env vars. Check .env")
    return _get(settings, f"/current/{settings.station_id}", "WeatherLink")


def fetch_stations(settings):
    """
    List the stations visible to the API key.

    Only the fields needed to pick a station id are returned.
    """
    if not settings.api_key or not settings.api_secret:
        raise WeatherLinkConfigError("Missing WEATHERLINK_API_KEY or WEATHERLINK_API_SECRET in .env")

    payload = _get(settings, "/stations", "Stations")
    return [
        {
            'station_name': s.get('station_name'),
            'station_id': s.get('station_id'),
            'station_id_uuid': s.get('station_id_uuid'),
        }
        for s in (payload or {}).get('stations') or []
    ]


def _records(payload):
    for sensor in (payload or {}).get('sensors') or []:
        for rec in (sensor or {}).get('data') or []:
            if isinstance(rec, dict):
                yield rec


def _as_number(value):
    """Return a finite float for numbers or numeric strings, else None"""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        n = float(value)
    elif isinstance(value, str):
        try:
            n = float(value)
        except ValueError:
            return None
    else:
        return None
    return n if math.isfinite(n) else None


def _strict_number(value):
    # Only real JSON numbers count for the racing inputs
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def summarize_sensors(payload):
    """Compact view of which keys each sensor record carries"""
    sensors = (payload or {}).get('sensors') or []
    summary = []
    for s in sensors:
        data = s.get('data') or []
        summary.append({
            'sensor_type': s.get('sensor_type'),
            'data_structure_type': s.get('data_structure_type'),
            'record_keys': [sorted(rec.keys()) for rec in data[:2]],
            'record_sample': data[:1],
        })
    return {'sensor_count': len(sensors), 'summary': summary}


def first_number_from_sensors(payload, field):
    """First finite numeric value for `field` across all sensor records"""
    for rec in _records(payload):
        n = _as_number(rec.get(field))
        if n is not None:
            return n
    return None


def extract_best_timestamp_iso(payload, now=None):
    """
    Latest record timestamp as ISO-8601 UTC, falling back to `now`.

    WeatherLink uses unix seconds in "ts"; anything that looks like
    milliseconds is taken as such.
    """
    best_ms = None
    for rec in _records(payload):
        n = _as_number(rec.get('ts'))
        if n is not None and n > 0:
            ms = n * 1000 if n < 10_000_000_000 else n
            if best_ms is None or ms > best_ms:
                best_ms = ms

    if best_ms:
        return iso_utc(datetime.fromtimestamp(best_ms / 1000, timezone.utc))
    return iso_utc(now)


def extract_inputs(payload):
    """
    Pull temp_f, humidity_pct, abs_pressure_inhg and uv_index from a payload.

    Pressure comes from the barometer record (bar_absolute or abs_press),
    temperature and humidity from the outdoor record (temp, hum). UV index is
    optional and None when no UV sensor is reporting.
    """
    temp_f = None
    humidity_pct = None
    abs_pressure_inhg = None

    for rec in _records(payload):
        if abs_pressure_inhg is None:
            abs_pressure_inhg = _strict_number(rec.get('bar_absolute'))
        if abs_pressure_inhg is None:
            abs_pressure_inhg = _strict_number(rec.get('abs_press'))

    for rec in _records(payload):
        if temp_f is None:
            temp_f = _strict_number(rec.get('temp'))
        if humidity_pct is None:
            humidity_pct = _strict_number(rec.get('hum'))

    # Offseason stations send nulls for the outdoor transmitter
    if temp_f is None or humidity_pct is None:
        raise MissingReadingError(
            "Outdoor sensor not reporting (temp/hum are missing or null). "
            "Turn on the outdoor ISS/transmitter to enable live racing calculations."
        )

    if abs_pressure_inhg is None:
        raise MissingReadingError("Could not find absolute pressure (bar_absolute/abs_press missing).")

    return {
        'temp_f': temp_f,
        'humidity_pct': humidity_pct,
        'abs_pressure_inhg': abs_pressure_inhg,
        'uv_index': first_number_from_sensors(payload, 'uv_index'),
    }
