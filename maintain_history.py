#!/usr/bin/env python3
"""
History maintenance script for the race weather application

This script performs maintenance on the stored reading history:
- Reporting how many readings are stored and their time span
- Setting up the history indexes
- Trimming the history to HISTORY_MAX readings
- Clearing the history
- Exporting one day's readings as CSV
"""
import sys
import argparse
from datetime import datetime, date

from racewx_app.config import load_env_vars, get_settings
from racewx_app.database.connection import connect_to_mongodb
from racewx_app.history import HistoryStore
from racewx_app.reporting import export_csv, export_filename, NoReadingsError


def export_day(history, day, output=None):
    """Write one day's readings to a CSV file, returns the path written"""
    text = export_csv(history.for_day(day))
    output = output or export_filename(day)
    with open(output, 'w', newline='') as f:
        f.write(text)
    print(f"Exported readings for {day} to {output}")
    return output


def main(argv=None):
    """Main function for the history maintenance script"""
    parser = argparse.ArgumentParser(description='Maintain the race weather reading history')
    parser.add_argument('--stats', action='store_true', help='Report history statistics')
    parser.add_argument('--setup-indexes', action='store_true', help='Create the history indexes')
    parser.add_argument('--trim', action='store_true', help='Trim the history to HISTORY_MAX readings')
    parser.add_argument('--clear', action='store_true', help='Delete every stored reading')
    parser.add_argument('--export-csv', action='store_true', help='Export one day of readings as CSV')
    parser.add_argument('--date', type=date.fromisoformat, help='Day to export (YYYY-MM-DD), default today')
    parser.add_argument('--output', metavar='FILE', help='CSV file to write')
    args = parser.parse_args(argv)

    # With no specific task, report statistics
    if not any([args.stats, args.setup_indexes, args.trim, args.clear, args.export_csv]):
        args.stats = True

    load_env_vars()
    settings = get_settings()
    mongo_client = None

    try:
        mongo_client = connect_to_mongodb(settings.mongo_uri)
        history = HistoryStore(mongo_client[settings.mongo_db], max_size=settings.history_max)

        if args.setup_indexes:
            history.setup_indexes()
            print("Index setup complete")

        if args.trim:
            removed = history.trim()
            print(f"Trimmed {removed} readings")

        if args.export_csv:
            try:
                export_day(history, args.date or datetime.now().date(), args.output)
            except NoReadingsError as e:
                print(str(e), file=sys.stderr)

        if args.clear:
            deleted = history.clear()
            print(f"Deleted {deleted} readings")

        if args.stats:
            stats = history.stats()
            print("History statistics:")
            print(f"  readings: {stats['count']} (max {stats['max_size']})")
            print(f"  newest:   {stats['newest_ts'] or '—'}")
            print(f"  oldest:   {stats['oldest_ts'] or '—'}")

        return 0

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    finally:
        if mongo_client:
            mongo_client.close()


if __name__ == "__main__":
    sys.exit(main())
