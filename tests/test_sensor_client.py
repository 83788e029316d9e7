"""
Unit tests for the HTTP sensor client.
"""

import math
import pytest
import requests
import sys
import os

# Add server directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'server'))

from sensor_client import SensorClient, SensorError, SensorTimeout, SensorUnreachable


class FakeResponse:
    def __init__(self, payload=None, status=200, text=None):
        self.payload = payload
        self.status_code = status
        self.text = text

    def json(self):
        if self.text is not None:
            raise ValueError('not json')
        return self.payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f'{self.status_code} error')


class FakeSession:
    """Stands in for requests.Session; records calls."""

    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse({})
        self.error = error
        self.calls = []

    def get(self, url, params=None, timeout=None):
        self.calls.append((url, params, timeout))
        if self.error is not None:
            raise self.error
        return self.response


def make_client(**kwargs):
    session = FakeSession(**kwargs)
    return SensorClient('http://stand.local/', timeout=0.5, session=session), session


class TestSensorClient:
    """Test suite for SensorClient."""

    def test_read_once(self):
        client, session = make_client(response=FakeResponse(
            {'thrust': 120.5, 'voltage': '11.9', 'current': 3, 'rpm': 7200}))

        reading = client.read_once()

        assert reading.thrust == 120.5
        assert reading.voltage == 11.9
        assert reading.current == 3.0
        assert reading.rpm == 7200.0
        assert session.calls == [('http://stand.local/getData', None, 0.5)]

    def test_non_numeric_fields_become_nan(self):
        client, _ = make_client(response=FakeResponse(
            {'thrust': 'ovf', 'voltage': 11.1, 'current': None}))

        reading = client.read_once()

        assert math.isnan(reading.thrust)
        assert math.isnan(reading.current)
        assert math.isnan(reading.rpm)
        assert reading.voltage == 11.1

    def test_reference_reading_endpoint(self):
        client, session = make_client(response=FakeResponse({'thrust': 50}))

        reading = client.read_raw_reference()

        assert reading.thrust == 50.0
        assert session.calls[0][0] == 'http://stand.local/getRawThrust'

    def test_malformed_json(self):
        client, _ = make_client(response=FakeResponse(text='<html>'))
        with pytest.raises(SensorError):
            client.read_once()

    def test_non_object_payload(self):
        client, _ = make_client(response=FakeResponse([1, 2, 3]))
        with pytest.raises(SensorError):
            client.read_once()

    def test_timeout_mapped(self):
        client, _ = make_client(error=requests.exceptions.ReadTimeout('slow'))
        with pytest.raises(SensorTimeout):
            client.read_once()

    def test_connection_error_mapped(self):
        client, _ = make_client(error=requests.exceptions.ConnectionError('refused'))
        with pytest.raises(SensorUnreachable):
            client.read_once()

    def test_http_error_mapped(self):
        client, _ = make_client(response=FakeResponse({}, status=500))
        with pytest.raises(SensorError):
            client.read_once()

    def test_write_throttle(self):
        client, session = make_client()

        client.write_throttle(1500)

        assert session.calls == [('http://stand.local/setThrottle', {'value': 1500}, 0.5)]

    def test_write_calibration_factor(self):
        client, session = make_client()

        client.write_calibration_factor(2.5)

        assert session.calls == [('http://stand.local/setCalibrationFactor', {'value': 2.5}, 0.5)]

    def test_write_failure_raises(self):
        client, _ = make_client(error=requests.exceptions.ConnectionError('refused'))
        with pytest.raises(SensorUnreachable):
            client.write_throttle(1200)

    def test_sampling_notifications(self):
        client, session = make_client()

        assert client.start_sampling() is True
        assert client.stop_sampling() is True
        assert [c[0] for c in session.calls] == [
            'http://stand.local/startSampling', 'http://stand.local/stopSampling']

    def test_notification_failure_not_raised(self):
        client, _ = make_client(error=requests.exceptions.ConnectTimeout('slow'))

        assert client.start_sampling() is False
        assert client.stop_sampling() is False


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
