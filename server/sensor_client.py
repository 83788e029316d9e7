"""HTTP client for the thrust stand's sensor/actuator endpoint."""

import logging
from typing import Dict, Optional

import requests

from models import RawReading

logger = logging.getLogger(__name__)


class SensorError(Exception):
    """A request to the stand failed or returned something unusable."""


class SensorUnreachable(SensorError):
    pass


class SensorTimeout(SensorError):
    pass


class SensorClient:
    """Request/response access to the stand.

    Endpoints served by the stand firmware:
        /getData               live reading {thrust, voltage, current, rpm}
        /getRawThrust          reference reading used during calibration
        /setThrottle           ?value=<microseconds>
        /setCalibrationFactor  ?value=<thrust factor>
        /startSampling, /stopSampling
    """

    def __init__(self, base_url: str, timeout: float = 0.8,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def _get(self, path: str, params: Dict = None) -> requests.Response:
        url = f'{self.base_url}{path}'
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.Timeout as e:
            raise SensorTimeout(f'{path} timed out after {self.timeout}s') from e
        except requests.exceptions.ConnectionError as e:
            raise SensorUnreachable(f'Cannot reach stand at {self.base_url}') from e
        except requests.exceptions.RequestException as e:
            raise SensorError(f'{path} failed: {e}') from e
        return response

    def _get_reading(self, path: str) -> RawReading:
        response = self._get(path)
        try:
            payload = response.json()
        except ValueError as e:
            raise SensorError(f'{path} returned malformed JSON') from e
        if not isinstance(payload, dict):
            raise SensorError(f'{path} returned {type(payload).__name__}, expected object')
        return RawReading.from_payload(payload)

    def read_once(self) -> RawReading:
        """Take one live reading."""
        return self._get_reading('/getData')

    def read_raw_reference(self) -> RawReading:
        """Take one unthrottled reference reading for calibration."""
        return self._get_reading('/getRawThrust')

    def write_throttle(self, value: int) -> None:
        self._get('/setThrottle', params={'value': value})

    def write_calibration_factor(self, value: float) -> None:
        self._get('/setCalibrationFactor', params={'value': value})

    def start_sampling(self) -> bool:
        """Tell the stand sampling began. Failure is logged, never raised."""
        return self._notify('/startSampling')

    def stop_sampling(self) -> bool:
        """Tell the stand sampling ended. Failure is logged, never raised."""
        return self._notify('/stopSampling')

    def _notify(self, path: str) -> bool:
        try:
            self._get(path)
        except SensorError as e:
            logger.warning("Stand notification %s failed: %s", path, e)
            return False
        return True
