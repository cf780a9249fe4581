#!/usr/bin/env python3
"""
Race weather Telegraf integration script

This script polls the WeatherLink station once, derives the racing weather
numbers and prints the reading as JSON for Telegraf's exec plugin.
"""
import sys
from racewx_app.main import run

if __name__ == "__main__":
    sys.exit(run())
