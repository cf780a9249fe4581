#!/usr/bin/env python3
"""
Rolling history of live readings, kept in MongoDB

Only the newest `max_size` readings are kept. A reading whose timestamp
matches the newest stored one is treated as a repeat poll and skipped.
"""
import logging
from datetime import datetime, timedelta, timezone

from pymongo import ASCENDING, DESCENDING

from .json_utils import parse_iso

logger = logging.getLogger("racewx.history")

HISTORY_COLLECTION = 'history'
DEFAULT_HISTORY_MAX = 2000

_NO_ID = {'_id': 0}


class HistoryStore:
    """Newest-first reading history backed by a MongoDB collection"""

    def __init__(self, db, max_size=DEFAULT_HISTORY_MAX):
        self.db = db
        self.collection = db[HISTORY_COLLECTION]
        self.max_size = max_size

    def setup_indexes(self):
        """Indexes for newest-first listing and duplicate timestamps"""
        self.collection.create_index([("ts_ms", DESCENDING)])
        self.collection.create_index([("ts", ASCENDING)], unique=True)
        logger.info("Set up history indexes")

    def latest(self):
        return self.collection.find_one({}, _NO_ID, sort=[("ts_ms", DESCENDING)])

    def add(self, reading):
        """
        Store a reading and trim the history.

        Returns True when stored, False when skipped as a repeat of the newest
        reading.
        """
        ts = reading['display']['ts']
        latest = self.latest()
        if latest is not None and latest.get('ts') == ts:
            logger.info(f"Skipping repeat reading at {ts}")
            return False

        document = {
            'ts': ts,
            'ts_ms': parse_iso(ts),
            'inputs': dict(reading['inputs']),
            'display': dict(reading['display']),
        }
        self.collection.insert_one(document)
        self.trim()
        return True

    def trim(self):
        """Delete everything older than the newest `max_size` readings"""
        cutoff = list(
            self.collection.find({}, {'ts_ms': 1})
            .sort("ts_ms", DESCENDING)
            .skip(self.max_size - 1)
            .limit(1)
        )
        if not cutoff:
            return 0

        result = self.collection.delete_many({'ts_ms': {'$lt': cutoff[0]['ts_ms']}})
        if result.deleted_count:
            logger.info(f"Trimmed {result.deleted_count} readings from history")
        return result.deleted_count

    def list(self, limit=None):
        """Stored readings, newest first"""
        cursor = self.collection.find({}, _NO_ID).sort("ts_ms", DESCENDING)
        if limit:
            cursor = cursor.limit(limit)
        return [_as_reading(doc) for doc in cursor]

    def for_day(self, day):
        """Readings whose timestamp falls on `day` in local time, newest first"""
        start = datetime(day.year, day.month, day.day).astimezone()
        end = start + timedelta(days=1)
        cursor = self.collection.find(
            {'ts_ms': {'$gte': start.astimezone(timezone.utc), '$lt': end.astimezone(timezone.utc)}},
            _NO_ID,
        ).sort("ts_ms", DESCENDING)
        return [_as_reading(doc) for doc in cursor]

    def clear(self):
        result = self.collection.delete_many({})
        logger.info(f"Cleared {result.deleted_count} readings from history")
        return result.deleted_count

    def stats(self):
        count = self.collection.count_documents({})
        newest = self.collection.find_one({}, _NO_ID, sort=[("ts_ms", DESCENDING)])
        oldest = self.collection.find_one({}, _NO_ID, sort=[("ts_ms", ASCENDING)])
        return {
            'count': count,
            'max_size': self.max_size,
            'newest_ts': newest.get('ts') if newest else None,
            'oldest_ts': oldest.get('ts') if oldest else None,
        }


def _as_reading(doc):
    return {'inputs': doc.get('inputs', {}), 'display': doc.get('display', {})}
