"""
Unit tests for derived metric computation.
"""

import math
import pytest
import sys
import os

# Add server directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'server'))

from calibration import ThreeAxisFactors, ThrustFactors
from metrics import derive, efficiency, power
from models import RawReading


class TestDerive:
    """Test suite for derive()."""

    def test_power_and_efficiency_example(self):
        """11.1 V at 2 A is 22.20 W; 50 g raw thrust gives 225.23 g/W."""
        raw = RawReading(thrust=50.0, voltage=11.1, current=2.0, rpm=6000.0)

        record = derive(raw, ThrustFactors(), throttle=1500, timestamp=100.0)
        display = record.to_dict()

        assert display['power'] == 22.2
        assert display['efficiency'] == 225.23
        assert record.efficiency == pytest.approx(50 / 22.2 * 100)

    def test_thrust_factor_scales_thrust(self):
        """Factor 2.0 turns a raw thrust of 10 into 20."""
        raw = RawReading(thrust=10.0, voltage=12.0, current=1.0, rpm=1000.0)

        record = derive(raw, ThrustFactors(thrust_factor=2.0), throttle=1200, timestamp=0.0)

        assert record.thrust == 20.0
        assert record.voltage == 12.0
        assert record.current == 1.0

    def test_efficiency_uses_raw_thrust(self):
        """Efficiency is raw thrust over calibrated power, not calibrated thrust."""
        raw = RawReading(thrust=10.0, voltage=10.0, current=1.0, rpm=0.0)

        record = derive(raw, ThrustFactors(thrust_factor=2.0), throttle=1000, timestamp=0.0)

        assert record.efficiency == pytest.approx(100.0)

    def test_three_axis_factors(self):
        """Thrust passes through; voltage and current are scaled."""
        raw = RawReading(thrust=40.0, voltage=10.0, current=4.0, rpm=3000.0)
        factors = ThreeAxisFactors(thrust_factor=2.0, voltage_factor=1.2, current_factor=1.25)

        record = derive(raw, factors, throttle=1300, timestamp=5.0)

        assert record.thrust == 40.0
        assert record.voltage == pytest.approx(12.0)
        assert record.current == pytest.approx(5.0)
        assert record.power == pytest.approx(60.0)
        assert record.efficiency == pytest.approx(40.0 / 60.0 * 100)

    def test_record_carries_throttle_timestamp_and_rpm(self):
        raw = RawReading(thrust=1.0, voltage=1.0, current=1.0, rpm=4321.0)

        record = derive(raw, ThrustFactors(), throttle=1750, timestamp=1234.5)

        assert record.throttle == 1750
        assert record.timestamp == 1234.5
        assert record.rpm == 4321.0

    @pytest.mark.parametrize('thrust', [0.0, 50.0, -3.0, 1e9])
    @pytest.mark.parametrize('voltage,current', [(0.0, 2.0), (11.1, 0.0), (0.0, 0.0)])
    def test_zero_power_gives_zero_efficiency(self, thrust, voltage, current):
        raw = RawReading(thrust=thrust, voltage=voltage, current=current, rpm=0.0)

        record = derive(raw, ThrustFactors(), throttle=1000, timestamp=0.0)

        assert record.efficiency == 0

    def test_zero_after_calibration_gives_zero_efficiency(self):
        """A zero voltage factor makes calibrated voltage zero."""
        raw = RawReading(thrust=50.0, voltage=11.1, current=2.0, rpm=0.0)
        factors = ThreeAxisFactors(voltage_factor=0.0)

        assert derive(raw, factors, 1000, 0.0).efficiency == 0

    def test_nan_propagates(self):
        """Non-numeric raw values flow through as NaN instead of raising."""
        raw = RawReading(thrust=math.nan, voltage=11.1, current=2.0, rpm=math.nan)

        record = derive(raw, ThrustFactors(thrust_factor=2.0), throttle=1000, timestamp=0.0)

        assert math.isnan(record.thrust)
        assert math.isnan(record.efficiency)
        assert record.has_nan()
        display = record.to_dict()
        assert display['thrust'] is None
        assert display['rpm'] is None
        assert display['power'] == 22.2


def test_efficiency_underflow_guard():
    """A product that underflows to zero still yields the sentinel."""
    assert power(1e-200, 1e-200) == 0.0
    assert efficiency(10.0, 1e-200, 1e-200) == 0.0


def test_to_dict_keeps_full_precision_in_record():
    raw = RawReading(thrust=1.0, voltage=1.111, current=1.0, rpm=0.0)
    record = derive(raw, ThrustFactors(), 1000, 0.0)

    assert record.voltage == 1.111
    assert record.to_dict()['voltage'] == 1.11
    assert record.to_dict(precision=None)['voltage'] == 1.111


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
