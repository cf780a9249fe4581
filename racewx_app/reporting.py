#!/usr/bin/env python3
"""
Reporting functions for the race weather application

Builds the rounded display payload for a live reading, classifies how fresh
the newest reading is, renders the history as a text table and exports a
day's readings as CSV.
"""
import io
import csv
import math
import logging
from datetime import datetime, timezone

from .json_utils import iso_utc, parse_iso
from .weather_calc import Inputs, compute_racing_weather, validate_inputs, DA_CALIBRATION
from .weatherlink import extract_inputs, extract_best_timestamp_iso

logger = logging.getLogger("racewx.reporting")

PLACEHOLDER = "—"

# Freshness thresholds for the newest reading (seconds)
LIVE_MAX_AGE = 90
STALE_MAX_AGE = 180

PINNED_COLUMNS = [
    'ts',
    'temp_f',
    'humidity_pct',
    'abs_pressure_inhg',
    'correction',
    'density_alt_ft',
    'adr',
    'humidity_grains',
    'vapor_pressure_inhg',
]

COLUMN_LABELS = {
    'ts': 'Date & Time Stamp',
    'temp_f': 'Temp',
    'humidity_pct': 'Humidity',
    'abs_pressure_inhg': 'Pressure',
    'correction': 'Correction Factor',
    'adr': 'ADR',
}

# Decimal places used when a column is shown to a person
COLUMN_DECIMALS = {
    'temp_f': 1,
    'humidity_pct': 2,
    'abs_pressure_inhg': 3,
    'vapor_pressure_inhg': 4,
    'dew_point_f': 1,
    'humidity_grains': 1,
    'density_alt_ft': 0,
    'correction': 4,
    'adr': 2,
}

REFERENCE_INPUTS = Inputs(temp_f=80, humidity_pct=50, abs_pressure_inhg=28.9)


class NoReadingsError(Exception):
    """Raised when an export has nothing to write"""


def round_to(value, decimals):
    """Round to `decimals` places with halves going up"""
    if value is None or not math.isfinite(value):
        return value
    p = 10 ** decimals
    return math.floor(value * p + 0.5) / p


def build_display(raw, ts, uv_index=None):
    """Rounded view of a RawOutput for display, storage and export"""
    density_alt = raw.density_alt_ft
    return {
        'ts': ts,
        'temp_f': raw.temp_f,
        'humidity_pct': raw.humidity_pct,
        'abs_pressure_inhg': raw.abs_pressure_inhg,
        'vapor_pressure_inhg': round_to(raw.vapor_pressure_inhg, 3),
        'dew_point_f': round_to(raw.dew_point_f, 1),
        'humidity_grains': round_to(raw.humidity_grains, 1),
        'adr': round_to(raw.adr_pct, 1),
        'density_alt_ft': int(round_to(density_alt, 0)) if math.isfinite(density_alt) else density_alt,
        'correction': round_to(raw.correction, 4),
        'uv_index': uv_index,
    }


def build_live_reading(payload, settings=None, now=None):
    """
    Turn a WeatherLink current-conditions payload into a reading.

    Returns {'inputs': ..., 'display': ...}. Raises MissingReadingError when
    the station is not reporting and InvalidInputsError for readings the
    derivations cannot handle.
    """
    extracted = extract_inputs(payload)
    inputs = Inputs(
        temp_f=extracted['temp_f'],
        humidity_pct=extracted['humidity_pct'],
        abs_pressure_inhg=extracted['abs_pressure_inhg'],
    )
    validate_inputs(inputs)

    calibration = settings.da_calibration if settings else DA_CALIBRATION
    raw = compute_racing_weather(inputs, calibration)

    if settings and settings.timestamp_source == 'station':
        ts = extract_best_timestamp_iso(payload, now)
    else:
        ts = iso_utc(now)

    display = build_display(raw, ts, extracted['uv_index'])
    logger.info(
        f"Computed reading at {ts}: ADR={display['adr']} DA={display['density_alt_ft']}ft "
        f"correction={display['correction']}"
    )
    return {'inputs': extracted, 'display': display}


def reference_calculation():
    """The 80F / 50% / 28.9 inHg smoke scenario, unrounded"""
    return compute_racing_weather(REFERENCE_INPUTS)


def age_seconds(last_ts, now=None):
    last = parse_iso(last_ts)
    if last is None:
        return math.inf
    now = now or datetime.now(timezone.utc)
    return (now - last).total_seconds()


def classify_staleness(last_ts, now=None):
    """LIVE, STALE or OFFLINE depending on the age of the newest reading"""
    age = age_seconds(last_ts, now)
    if not math.isfinite(age):
        return 'OFFLINE'
    if age <= LIVE_MAX_AGE:
        return 'LIVE'
    if age <= STALE_MAX_AGE:
        return 'STALE'
    return 'OFFLINE'


def format_age(seconds):
    if seconds is None or not math.isfinite(seconds) or seconds < 0:
        return PLACEHOLDER
    if seconds < 60:
        return f"{int(round_to(seconds, 0))}s"
    minutes = int(seconds // 60)
    secs = int(round_to(seconds % 60, 0))
    return f"{minutes}m {secs}s"


def format_ts_12_hour(ts):
    """Local 12-hour timestamp, e.g. '06/01/2024, 2:05:09 PM'"""
    if not ts:
        return PLACEHOLDER
    dt = parse_iso(ts)
    if dt is None:
        return ts
    local = dt.astimezone()
    return f"{local:%m/%d/%Y}, {int(local.strftime('%I'))}:{local:%M:%S} {local:%p}"


def fmt(value, decimals=None):
    if value is None:
        return PLACEHOLDER
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if isinstance(value, float) and math.isnan(value):
            return PLACEHOLDER
        return f"{value:.{decimals}f}" if decimals is not None else str(value)
    return str(value)


def ordered_columns(sample):
    """Pinned display columns first, then anything else in the sample sorted"""
    if not sample:
        return []
    remaining = sorted(k for k in sample if k not in PINNED_COLUMNS)
    return PINNED_COLUMNS + remaining


def format_cell(key, value):
    if key == 'ts':
        return format_ts_12_hour(value)
    return fmt(value, COLUMN_DECIMALS.get(key))


def format_history_table(readings):
    """Plain text table of readings (newest first) for terminal output"""
    if not readings:
        return "No readings yet."

    columns = ordered_columns(readings[0].get('display'))
    headers = [COLUMN_LABELS.get(c, c) for c in columns]
    rows = [[format_cell(c, r.get('display', {}).get(c)) for c in columns] for r in readings]

    widths = [max(len(h), *(len(row[i]) for row in rows)) for i, h in enumerate(headers)]
    lines = ["  ".join(h.ljust(w) for h, w in zip(headers, widths))]
    lines.append("  ".join("-" * w for w in widths))
    for row in rows:
        lines.append("  ".join(cell.ljust(w) for cell, w in zip(row, widths)))
    return "\n".join(lines)


def local_day(ts):
    dt = parse_iso(ts)
    if dt is None:
        return None
    return dt.astimezone().date()


def readings_for_day(readings, day):
    """Readings whose display timestamp falls on `day` in local time"""
    return [r for r in readings if local_day(r.get('display', {}).get('ts')) == day]


def export_filename(day):
    return f"EliteTrackWeather_{day:%Y-%m-%d}.csv"


def csv_cell(value):
    """CSV text for one display value: empty for None, 80 rather than 80.0"""
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return value


def export_csv(readings, columns=None):
    """
    CSV text of the readings' display values.

    Cells are quoted only when they contain a quote, comma or newline; missing
    values are written as empty cells.
    """
    if not readings:
        raise NoReadingsError("No readings for today yet.")

    if columns is None:
        columns = ordered_columns(readings[0].get('display'))

    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator='\n')
    writer.writerow(columns)
    for r in readings:
        display = r.get('display', {})
        writer.writerow([csv_cell(display.get(c)) for c in columns])

    # No trailing newline after the last row
    return buf.getvalue().rstrip('\n')
