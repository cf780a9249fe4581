#!/usr/bin/env python3
"""
Race weather application package

This package polls a WeatherLink station, derives racing weather numbers
(ADR, density altitude, correction factor and friends), keeps a rolling
history and exports it.
"""

__version__ = '1.0.0'

# Import key functions to make them available at the package level
from .weather_calc import Inputs, RawOutput, compute_racing_weather, validate_inputs, DA_CALIBRATION
from .weatherlink import fetch_current, fetch_stations, extract_inputs
from .reporting import build_live_reading, build_display, export_csv
from .history import HistoryStore
