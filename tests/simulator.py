"""
Test stand simulator for running the dashboard without hardware.

Emulates the stand's HTTP endpoint with a motor/propeller model.
"""

import numpy as np
from flask import Flask, jsonify, request
from typing import Dict


class PropellerSimulator:
    """Generate plausible motor/propeller readings for a throttle setting."""

    def __init__(self, max_thrust_g: float = 1200.0, max_rpm: float = 12000.0,
                 battery_v: float = 12.6, max_current_a: float = 30.0, noise: float = 0.02):
        """
        Initialize propeller simulator.

        Args:
            max_thrust_g: Thrust at full throttle in grams
            max_rpm: RPM at full throttle
            battery_v: Unloaded pack voltage
            max_current_a: Current draw at full throttle
            noise: Relative gaussian noise applied to every channel
        """
        self.max_thrust_g = max_thrust_g
        self.max_rpm = max_rpm
        self.battery_v = battery_v
        self.max_current_a = max_current_a
        self.noise = noise

        self.throttle = 1000
        self.calibration_factor = 1.0
        self.sampling = False

    def _level(self) -> float:
        """Throttle as a 0..1 fraction of the 1000-2000 us range."""
        return float(np.clip((self.throttle - 1000) / 1000.0, 0.0, 1.0))

    def _jitter(self, value: float) -> float:
        if value == 0:
            return 0.0
        return float(value + np.random.normal(0, abs(value) * self.noise))

    def reading(self, apply_factor: bool = True) -> Dict:
        """One reading; thrust is divided by the pushed calibration factor unless apply_factor is False."""
        level = self._level()
        rpm = self.max_rpm * level
        # Static thrust and current both scale roughly with rpm squared
        thrust = self.max_thrust_g * level ** 2
        current = 0.3 + self.max_current_a * level ** 2.5
        voltage = self.battery_v - 0.02 * current  # Pack sag under load
        factor = self.calibration_factor if apply_factor else 1.0

        return {
            'thrust': round(self._jitter(thrust) / factor, 2),
            'voltage': round(self._jitter(voltage), 2),
            'current': round(self._jitter(current), 2),
            'rpm': int(self._jitter(rpm)),
        }


def create_device_app(simulator: PropellerSimulator = None) -> Flask:
    """Flask app serving the same endpoints as the stand firmware."""
    sim = simulator or PropellerSimulator()
    device = Flask(__name__)

    @device.route('/getData')
    def get_data():
        return jsonify(sim.reading())

    @device.route('/getRawThrust')
    def get_raw_thrust():
        return jsonify(sim.reading(apply_factor=False))

    @device.route('/setThrottle')
    def set_throttle():
        sim.throttle = request.args.get('value', 1000, type=int)
        return 'OK'

    @device.route('/setCalibrationFactor')
    def set_calibration_factor():
        sim.calibration_factor = request.args.get('value', 1.0, type=float)
        return 'OK'

    @device.route('/startSampling')
    def start_sampling():
        sim.sampling = True
        return 'OK'

    @device.route('/stopSampling')
    def stop_sampling():
        sim.sampling = False
        return 'OK'

    return device


def main():
    """Serve a simulated stand on port 8080.

    Point the dashboard at it with SENSOR_BASE_URL=http://localhost:8080
    """
    device = create_device_app()
    print("Simulated thrust stand on http://0.0.0.0:8080")
    device.run(host='0.0.0.0', port=8080)


if __name__ == '__main__':
    main()
