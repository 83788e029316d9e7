"""Configuration for the thrust stand dashboard server."""

import os

class Config:
    """Server configuration."""

    # Flask settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Sensor endpoint (test stand microcontroller)
    SENSOR_BASE_URL = os.environ.get('SENSOR_BASE_URL', 'http://192.168.4.1')
    SENSOR_TIMEOUT = float(os.environ.get('SENSOR_TIMEOUT', 0.8))  # Must fit inside one tick

    # WebSocket settings
    SOCKETIO_ASYNC_MODE = 'threading'
    SOCKETIO_CORS_ALLOWED_ORIGINS = '*'  # Restrict in production

    # Sampling
    SAMPLE_PERIOD_S = 1.0
    ROLLING_WINDOW_SIZE = 20  # Points kept on the live chart

    # Throttle (ESC pulse width in microseconds)
    DEFAULT_THROTTLE = 1000
    THROTTLE_MIN = 1000
    THROTTLE_MAX = 2000

    # Calibration / display
    DEFAULT_CALIBRATION_MODE = 'thrust'
    DISPLAY_PRECISION = 2

    # Export
    REPORT_MAX_ROWS = 500
