"""Flask application for the thrust stand dashboard server."""

from flask import Flask, jsonify, request, send_file
from flask_socketio import SocketIO
from flask_cors import CORS
import logging
import os
from datetime import datetime

from calibration import CalibrationManager, InvalidInput, get_strategy
from config import Config
from pdf_report import LOG_COLUMNS, SessionReportGenerator, format_value
from sampling import SamplingController, TelemetrySession
from sensor_client import SensorClient, SensorError
from websocket_handler import WebSocketHandler

logger = logging.getLogger(__name__)


def create_app(config=Config, client: SensorClient = None):
    """Build the app, its Socket.IO server and the telemetry session.

    Returns (app, socketio). The tick loop is not started here; call
    start_sampling_loop() once the server is about to run.
    """
    app = Flask(__name__, static_folder='static')
    app.config.from_object(config)
    CORS(app)

    socketio = SocketIO(
        app,
        cors_allowed_origins=config.SOCKETIO_CORS_ALLOWED_ORIGINS,
        async_mode=config.SOCKETIO_ASYNC_MODE
    )

    if client is None:
        client = SensorClient(config.SENSOR_BASE_URL, timeout=config.SENSOR_TIMEOUT)

    session = TelemetrySession(
        window_size=config.ROLLING_WINDOW_SIZE,
        throttle=config.DEFAULT_THROTTLE,
        factors=get_strategy(config.DEFAULT_CALIBRATION_MODE).identity()
    )
    controller = SamplingController(
        session, client,
        throttle_min=config.THROTTLE_MIN,
        throttle_max=config.THROTTLE_MAX
    )
    calibration = CalibrationManager(controller, default_mode=config.DEFAULT_CALIBRATION_MODE)
    ws_handler = WebSocketHandler(socketio, controller, calibration, config)
    reports = SessionReportGenerator(max_rows=config.REPORT_MAX_ROWS, precision=config.DISPLAY_PRECISION)

    app.extensions['telemetry'] = {
        'controller': controller,
        'calibration': calibration,
        'ws_handler': ws_handler,
    }

    # HTTP Routes

    @app.route('/')
    def index():
        """Serve the dashboard page when one is installed."""
        page = os.path.join(app.static_folder, 'index.html')
        if not os.path.exists(page):
            return jsonify({'success': True, 'message': 'Thrust stand dashboard API'})
        return send_file(page)

    @app.route('/api/status', methods=['GET'])
    def get_status():
        """Get current system status."""
        return jsonify(ws_handler.get_status())

    @app.route('/api/window', methods=['GET'])
    def get_window():
        """Rolling window for the live chart."""
        return jsonify({
            'success': True,
            'window_size': session.buffers.window.capacity,
            'records': [r.to_dict(config.DISPLAY_PRECISION) for r in session.buffers.snapshot()]
        })

    @app.route('/api/log', methods=['GET'])
    def get_log():
        """Historical log for the table view, with summary."""
        payload = ws_handler.log_payload()
        payload['success'] = True
        return jsonify(payload)

    @app.route('/api/summary', methods=['GET'])
    def get_summary():
        return jsonify({
            'success': True,
            'summary': ws_handler.log_payload()['summary']
        })

    @app.route('/api/log/csv', methods=['GET'])
    def download_log_csv():
        """Download the historical log as CSV."""
        records = session.buffers.log_snapshot()

        csv_lines = ['timestamp,' + ','.join(header for _, header in LOG_COLUMNS) + '\n']
        for record in records:
            values = [format_value(getattr(record, field), config.DISPLAY_PRECISION) for field, _ in LOG_COLUMNS]
            csv_lines.append(f'{record.timestamp:.3f},' + ','.join(values) + '\n')

        filename = f'thrust_log_{datetime.now().strftime("%Y-%m-%d_%H-%M-%S")}.csv'
        return ''.join(csv_lines), 200, {
            'Content-Type': 'text/csv',
            'Content-Disposition': f'attachment; filename={filename}'
        }

    @app.route('/api/log/pdf', methods=['GET'])
    def download_log_pdf():
        """Download the print view of the historical log."""
        records = session.buffers.log_snapshot()
        summary = ws_handler.log_payload(records)['summary']
        pdf = reports.generate_report(records, summary, calibration.get())
        filename = f'thrust_report_{datetime.now().strftime("%Y-%m-%d_%H-%M-%S")}.pdf'
        return send_file(pdf, mimetype='application/pdf', as_attachment=True, download_name=filename)

    @app.route('/api/sampling/start', methods=['POST'])
    def start_sampling():
        started = controller.start()
        return jsonify({'success': True, 'sampling': True, 'changed': started})

    @app.route('/api/sampling/stop', methods=['POST'])
    def stop_sampling():
        stopped = controller.stop()
        return jsonify({'success': True, 'sampling': False, 'changed': stopped})

    @app.route('/api/throttle', methods=['POST'])
    def set_throttle():
        data = request.get_json(silent=True) or {}
        value = controller.set_throttle(data.get('value'))
        socketio.emit('throttle', {'value': value}, namespace='/dashboard')
        return jsonify({'success': True, 'throttle': value})

    @app.route('/api/calibration', methods=['GET', 'POST'])
    def calibration_route():
        """Get or run calibration."""
        if request.method == 'GET':
            return jsonify({
                'success': True,
                'calibration': calibration.get()
            })

        data = request.get_json(silent=True) or {}
        factors = calibration.run_calibration(data, mode=data.get('mode'))
        socketio.emit('calibration', factors.to_dict(), namespace='/dashboard')
        return jsonify({
            'success': True,
            'calibration': factors.to_dict()
        })

    @app.route('/api/reset', methods=['POST'])
    def reset():
        controller.reset()
        return jsonify({'success': True, 'message': 'Buffers cleared'})

    @app.errorhandler(InvalidInput)
    def invalid_input(error):
        return jsonify({
            'success': False,
            'error': str(error)
        }), 400

    @app.errorhandler(SensorError)
    def sensor_error(error):
        return jsonify({
            'success': False,
            'error': f'Test stand error: {error}'
        }), 502

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 errors."""
        return jsonify({
            'success': False,
            'error': 'Endpoint not found'
        }), 404

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        return jsonify({
            'success': False,
            'error': 'Internal server error'
        }), 500

    return app, socketio


def start_sampling_loop(app, socketio):
    """Run the controller's tick loop as a Socket.IO background task."""
    controller = app.extensions['telemetry']['controller']
    return socketio.start_background_task(
        controller.run,
        period=app.config['SAMPLE_PERIOD_S'],
        sleep=socketio.sleep
    )


if __name__ == '__main__':
    logging.basicConfig(
        level=Config.LOG_LEVEL,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )
    app, socketio = create_app()
    start_sampling_loop(app, socketio)

    print("=" * 60)
    print("Thrust Stand Dashboard Server")
    print("=" * 60)
    print(f"Test stand: {Config.SENSOR_BASE_URL}")
    print(f"Server starting on http://0.0.0.0:5000")
    print("Dashboard WebSocket: ws://[server-ip]:5000/dashboard")
    print("=" * 60)

    socketio.run(
        app,
        host='0.0.0.0',
        port=5000,
        debug=True,
        use_reloader=False,
        allow_unsafe_werkzeug=True
    )
