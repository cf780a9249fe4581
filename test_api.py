#!/usr/bin/env python3
"""
Test the race weather HTTP API
"""
import os
import unittest
from datetime import datetime, date, timedelta, timezone
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

from racewx_app.server import app
from racewx_app.api.routes import get_history, get_history_provider
from racewx_app.json_utils import iso_utc
from racewx_app.reporting import build_live_reading
from racewx_app.weatherlink import WeatherLinkError

NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

PAYLOAD = {
    'sensors': [
        {'sensor_type': 242, 'data_structure_type': 12, 'data': [{'ts': 1717243200, 'bar_absolute': 28.9}]},
        {'sensor_type': 43, 'data_structure_type': 10, 'data': [{'ts': 1717243200, 'temp': 80, 'hum': 50}]},
    ]
}

ENV = {
    'WEATHERLINK_API_KEY': 'abcdef',
    'WEATHERLINK_API_SECRET': 'secret',
    'WEATHERLINK_STATION_ID': '123456',
}


class TestWeatherApi(unittest.TestCase):

    def setUp(self):
        """Set up test fixtures"""
        self.mock_history = MagicMock()
        app.dependency_overrides[get_history] = lambda: self.mock_history
        app.dependency_overrides[get_history_provider] = lambda: (lambda: self.mock_history)
        # No context manager, so the lifespan (Mongo, scheduler) never runs
        self.client = TestClient(app)
        self.env = patch.dict(os.environ, ENV, clear=True)
        self.env.start()

    def tearDown(self):
        self.env.stop()
        app.dependency_overrides.clear()

    def test_root(self):
        response = self.client.get('/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'running')
        self.assertFalse(response.json()['scheduler_active'])

    def test_reference_calculation(self):
        response = self.client.get('/api/test')
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['message'], 'Test calculation')
        self.assertAlmostEqual(body['result']['adr_pct'], 91.349141473019131, places=9)
        self.assertEqual(body['result']['density_alt_ft'], 3038.0)

    def test_envcheck_hides_secrets(self):
        response = self.client.get('/api/envcheck')
        body = response.json()
        self.assertEqual(body, {
            'has_api_key': True,
            'api_key_length': 6,
            'has_api_secret': True,
            'api_secret_length': 6,
            'has_station_id': True,
            'station_id': '123456',
        })
        self.assertNotIn('abcdef', response.text)

    @patch('racewx_app.api.routes.fetch_current')
    def test_live_reading_is_stored(self, mock_fetch):
        mock_fetch.return_value = PAYLOAD

        response = self.client.get('/api/live')

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['display']['adr'], 91.3)
        self.assertEqual(body['display']['density_alt_ft'], 3038)
        self.assertEqual(body['display']['correction'], 1.0744)
        self.assertEqual(body['inputs']['abs_pressure_inhg'], 28.9)
        self.mock_history.add.assert_called_once()

    @patch('racewx_app.api.routes.fetch_current')
    def test_live_reading_when_storage_unreachable(self, mock_fetch):
        mock_fetch.return_value = PAYLOAD
        del app.dependency_overrides[get_history_provider]

        with patch('racewx_app.database.connection.get_database') as mock_get_database:
            mock_get_database.side_effect = ConnectionError('Failed to connect to MongoDB after 5 attempts')
            response = self.client.get('/api/live')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['display']['adr'], 91.3)
        mock_get_database.assert_called_once()

    @patch('racewx_app.api.routes.fetch_current')
    def test_live_reading_when_insert_fails(self, mock_fetch):
        mock_fetch.return_value = PAYLOAD
        self.mock_history.add.side_effect = ServerSelectionTimeoutError('No servers available')

        response = self.client.get('/api/live')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['display']['correction'], 1.0744)

    @patch('racewx_app.api.routes.fetch_current')
    def test_live_reading_skips_storage_on_upstream_failure(self, mock_fetch):
        mock_fetch.side_effect = WeatherLinkError('WeatherLink HTTP 503: down')
        provider = MagicMock()
        app.dependency_overrides[get_history_provider] = lambda: provider

        response = self.client.get('/api/live')

        self.assertEqual(response.status_code, 500)
        provider.assert_not_called()

    @patch('racewx_app.api.routes.fetch_current')
    def test_live_reading_upstream_failure(self, mock_fetch):
        mock_fetch.side_effect = WeatherLinkError('WeatherLink HTTP 401: bad key')

        response = self.client.get('/api/live')

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()['detail'], 'WeatherLink HTTP 401: bad key')
        self.mock_history.add.assert_not_called()

    @patch('racewx_app.api.routes.fetch_current')
    def test_live_reading_degenerate_inputs(self, mock_fetch):
        mock_fetch.return_value = {'sensors': [{'data': [{'bar_absolute': 0.2, 'temp': 80, 'hum': 50}]}]}

        response = self.client.get('/api/live')

        self.assertEqual(response.status_code, 500)
        self.mock_history.add.assert_not_called()

    @patch('racewx_app.api.routes.fetch_current')
    def test_peek(self, mock_fetch):
        mock_fetch.return_value = PAYLOAD
        body = self.client.get('/api/peek').json()
        self.assertEqual(body['sensor_count'], 2)
        self.assertEqual(body['summary'][1]['record_keys'], [['hum', 'temp', 'ts']])

    @patch('racewx_app.api.routes.fetch_stations')
    def test_stations(self, mock_stations):
        mock_stations.return_value = [{'station_name': 'Track', 'station_id': 42, 'station_id_uuid': 'abc'}]
        body = self.client.get('/api/stations').json()
        self.assertEqual(body['stations'][0]['station_name'], 'Track')

    def test_history(self):
        self.mock_history.list.return_value = [build_live_reading(PAYLOAD, now=NOW)]

        response = self.client.get('/api/history?limit=5')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['count'], 1)
        self.mock_history.list.assert_called_once_with(5)

    def test_history_rejects_bad_limit(self):
        self.assertEqual(self.client.get('/api/history?limit=0').status_code, 422)

    def test_clear_history(self):
        self.mock_history.clear.return_value = 7
        response = self.client.delete('/api/history')
        self.assertEqual(response.json(), {'deleted': 7})

    def test_export_csv(self):
        self.mock_history.for_day.return_value = [build_live_reading(PAYLOAD, now=NOW)]

        response = self.client.get('/api/history/export.csv?date=2024-06-01')

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers['content-type'].startswith('text/csv'))
        self.assertIn('EliteTrackWeather_2024-06-01.csv', response.headers['content-disposition'])
        self.assertTrue(response.text.startswith('ts,temp_f,humidity_pct'))
        self.mock_history.for_day.assert_called_once_with(date(2024, 6, 1))

    def test_export_csv_empty_day(self):
        self.mock_history.for_day.return_value = []

        response = self.client.get('/api/history/export.csv?date=2024-06-01')

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['detail'], 'No readings for today yet.')

    def test_status_live(self):
        self.mock_history.latest.return_value = {'ts': iso_utc()}
        body = self.client.get('/api/status').json()
        self.assertEqual(body['state'], 'LIVE')
        self.assertIsNotNone(body['age_seconds'])

    def test_status_stale(self):
        self.mock_history.latest.return_value = {'ts': iso_utc(datetime.now(timezone.utc) - timedelta(seconds=120))}
        self.assertEqual(self.client.get('/api/status').json()['state'], 'STALE')

    def test_status_without_readings(self):
        self.mock_history.latest.return_value = None
        body = self.client.get('/api/status').json()
        self.assertEqual(body['state'], 'OFFLINE')
        self.assertIsNone(body['age_seconds'])
        self.assertEqual(body['age_text'], '—')


if __name__ == '__main__':
    unittest.main()
