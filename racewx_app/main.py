#!/usr/bin/env python3
"""
Main module for the race weather application

One-shot command line run: poll the station once, derive the racing numbers,
store the reading in the history and print it as JSON. Suitable for cron or
Telegraf's exec plugin.
"""
import sys
import json
import logging
import argparse

from .config import load_env_vars, get_settings
from .database.connection import connect_to_mongodb
from .history import HistoryStore
from .reporting import build_live_reading, reference_calculation, format_history_table
from .weatherlink import fetch_current, fetch_stations, summarize_sensors

logger = logging.getLogger("racewx.main")


def build_parser():
    parser = argparse.ArgumentParser(description='Poll a WeatherLink station and derive racing weather')
    parser.add_argument('--no-store', action='store_true', help='Do not write the reading to the history')
    parser.add_argument('--test', action='store_true', help='Print the 80F/50%%/28.9inHg reference calculation')
    parser.add_argument('--stations', action='store_true', help='List the stations visible to the API key')
    parser.add_argument('--peek', action='store_true', help='Show which keys each sensor record carries')
    parser.add_argument('--history', metavar='N', type=int, help='Print the newest N stored readings as a table')
    return parser


def run(argv=None):
    """Main function to run one poll of the race weather application"""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stderr)]
    )

    mongo_client = None

    try:
        load_env_vars()

        if args.test:
            print(json.dumps({'message': 'Test calculation', 'result': reference_calculation().model_dump()}, indent=2))
            return 0

        settings = get_settings()

        if args.stations:
            print(json.dumps({'stations': fetch_stations(settings)}, indent=2))
            return 0

        if args.peek:
            print(json.dumps(summarize_sensors(fetch_current(settings)), indent=2))
            return 0

        if args.history is not None:
            mongo_client = connect_to_mongodb(settings.mongo_uri)
            history = HistoryStore(mongo_client[settings.mongo_db], max_size=settings.history_max)
            print(format_history_table(history.list(args.history)))
            return 0

        reading = build_live_reading(fetch_current(settings), settings)

        if not args.no_store:
            mongo_client = connect_to_mongodb(settings.mongo_uri)
            history = HistoryStore(mongo_client[settings.mongo_db], max_size=settings.history_max)
            history.add(reading)

        print(json.dumps(reading))
        return 0

    except Exception as e:
        logger.exception(f"Error: {e}")
        return 1

    finally:
        if mongo_client:
            mongo_client.close()


if __name__ == "__main__":
    sys.exit(run())
