#!/usr/bin/env python3
"""
Timestamp utilities for the race weather application

Readings carry ISO-8601 UTC strings with millisecond precision and a Z
suffix, the same shape a browser's Date.toISOString() produces.
"""
from datetime import datetime, timezone


def iso_utc(dt=None):
    """ISO-8601 UTC string with millisecond precision and a Z suffix"""
    if dt is None:
        dt = datetime.now(timezone.utc)
    elif dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def parse_iso(ts):
    """Parse an ISO-8601 timestamp into an aware datetime, or None"""
    if not ts or not isinstance(ts, str):
        return None
    if ts.endswith('Z'):
        ts = ts[:-1] + '+00:00'
    try:
        dt = datetime.fromisoformat(ts)
    except ValueError:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt
