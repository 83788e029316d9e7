"""Socket.IO dashboard: operator commands in, telemetry out."""

import logging
from flask_socketio import SocketIO, emit
from typing import Dict, Sequence

from analysis import SessionAnalyzer
from calibration import CalibrationManager, InvalidInput
from config import Config
from models import DerivedRecord, SamplingState
from sampling import SamplingController
from sensor_client import SensorError

logger = logging.getLogger(__name__)

NAMESPACE = '/dashboard'


class WebSocketHandler:
    """Bridge between dashboards and the sampling controller.

    Registered as a presentation sink on the controller, so every appended
    record, state change, export-ready log and reset is broadcast.
    """

    def __init__(self, socketio: SocketIO, controller: SamplingController,
                 calibration: CalibrationManager, config: Config):
        self.socketio = socketio
        self.controller = controller
        self.calibration = calibration
        self.config = config
        self.precision = config.DISPLAY_PRECISION

        controller.add_sink(self)
        self._register_handlers()

    def _register_handlers(self):
        """Register all WebSocket event handlers."""

        @self.socketio.on('connect', namespace=NAMESPACE)
        def dashboard_connect():
            logger.info("Dashboard connected")
            emit('sampling_status', {'sampling': self.controller.session.sampling})
            emit('calibration', self.calibration.get())
            emit('throttle', {'value': self.controller.session.throttle})
            emit('window', self._window_payload())

        @self.socketio.on('start_sampling', namespace=NAMESPACE)
        def handle_start_sampling():
            if not self.controller.start():
                emit('message', {'text': 'Already sampling'})

        @self.socketio.on('stop_sampling', namespace=NAMESPACE)
        def handle_stop_sampling():
            if not self.controller.stop():
                emit('message', {'text': 'Not sampling'})

        @self.socketio.on('set_throttle', namespace=NAMESPACE)
        def handle_set_throttle(data):
            try:
                value = self.controller.set_throttle((data or {}).get('value'))
            except (InvalidInput, SensorError) as e:
                emit('error', {'message': str(e)})
                return
            self.socketio.emit('throttle', {'value': value}, namespace=NAMESPACE)

        @self.socketio.on('calibrate', namespace=NAMESPACE)
        def handle_calibrate(data):
            data = data or {}
            try:
                factors = self.calibration.run_calibration(data, mode=data.get('mode'))
            except InvalidInput as e:
                emit('error', {'message': str(e)})
                return
            except SensorError as e:
                emit('error', {'message': f'Calibration failed: {e}'})
                return
            self.socketio.emit('calibration', factors.to_dict(), namespace=NAMESPACE)
            emit('message', {'text': f'Calibration applied ({factors.mode})'})

        @self.socketio.on('reset', namespace=NAMESPACE)
        def handle_reset():
            self.controller.reset()

        @self.socketio.on('get_log', namespace=NAMESPACE)
        def handle_get_log():
            emit('log', self.log_payload())

    def _window_payload(self) -> Dict:
        return {
            'window_size': self.controller.session.buffers.window.capacity,
            'records': [r.to_dict(self.precision) for r in self.controller.session.buffers.snapshot()],
        }

    def log_payload(self, records: Sequence[DerivedRecord] = None) -> Dict:
        """Full historical log plus its summary."""
        if records is None:
            records = self.controller.session.buffers.log_snapshot()
        return {
            'records': [r.to_dict(self.precision) for r in records],
            'summary': SessionAnalyzer(records).compute_all_metrics(self.precision),
        }

    # Presentation sink interface

    def on_record(self, record: DerivedRecord):
        payload = record.to_dict(self.precision)
        payload['window_size'] = self.controller.session.buffers.window.capacity
        self.socketio.emit('reading', payload, namespace=NAMESPACE)

    def on_state_change(self, state: SamplingState):
        self.socketio.emit('sampling_status', {'sampling': state is SamplingState.SAMPLING},
                           namespace=NAMESPACE)

    def on_log_ready(self, records: Sequence[DerivedRecord]):
        self.socketio.emit('log_ready', self.log_payload(records), namespace=NAMESPACE)

    def on_reset(self):
        self.socketio.emit('buffers_cleared', {}, namespace=NAMESPACE)

    def get_status(self) -> Dict:
        """Get current system status."""
        session = self.controller.session
        return {
            'sampling': session.sampling,
            'throttle': session.throttle,
            'calibration': self.calibration.get(),
            'window_points': len(session.buffers.window),
            'log_points': len(session.buffers.log),
        }
