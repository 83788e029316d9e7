"""Calibration strategies and the calibration manager."""

import logging
import math
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from models import RawReading

logger = logging.getLogger(__name__)


class InvalidInput(ValueError):
    """Operator input (or the reference reading it is paired with) is unusable."""


def validate_positive(name: str, value) -> float:
    """Return value as a finite positive float or raise InvalidInput."""
    if isinstance(value, bool) or value is None:
        raise InvalidInput(f'{name} is required')
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidInput(f'{name} must be a number, got {value!r}')
    if not math.isfinite(number) or number <= 0:
        raise InvalidInput(f'{name} must be a finite positive number, got {value!r}')
    return number


def _check_reference(name: str, value: float) -> float:
    # A zero raw value would give an infinite factor
    if not math.isfinite(value) or value <= 0:
        raise InvalidInput(f'Raw reference {name} is {value}; cannot calibrate')
    return value


@dataclass(frozen=True)
class ThrustFactors:
    """Single-factor set: thrust is scaled locally, voltage/current pass through."""

    thrust_factor: float = 1.0

    mode = 'thrust'

    def apply(self, raw: RawReading) -> Tuple[float, float, float]:
        return raw.thrust * self.thrust_factor, raw.voltage, raw.current

    def to_dict(self) -> Dict:
        return {'mode': self.mode, 'thrust_factor': self.thrust_factor}


@dataclass(frozen=True)
class ThreeAxisFactors:
    """Three-factor set.

    Thrust arrives already corrected by the stand (the thrust factor is
    pushed to it), so only voltage and current are scaled here.
    """

    thrust_factor: float = 1.0
    voltage_factor: float = 1.0
    current_factor: float = 1.0

    mode = 'three_axis'

    def apply(self, raw: RawReading) -> Tuple[float, float, float]:
        return raw.thrust, raw.voltage * self.voltage_factor, raw.current * self.current_factor

    def to_dict(self) -> Dict:
        return {
            'mode': self.mode,
            'thrust_factor': self.thrust_factor,
            'voltage_factor': self.voltage_factor,
            'current_factor': self.current_factor,
        }


class CalibrationStrategy:
    """Turns known reference values plus one raw reading into a factor set."""

    mode = None
    known_fields: Tuple[str, ...] = ()
    pushes_to_device = False

    def identity(self):
        raise NotImplementedError

    def validate(self, known_values: Dict) -> Dict[str, float]:
        return {name: validate_positive(name, known_values.get(name)) for name in self.known_fields}

    def compute(self, known: Dict[str, float], raw: RawReading):
        raise NotImplementedError


class ThrustOnlyCalibration(CalibrationStrategy):
    """factor = known weight / raw thrust, applied by multiplication."""

    mode = 'thrust'
    known_fields = ('known_weight',)

    def identity(self) -> ThrustFactors:
        return ThrustFactors()

    def compute(self, known: Dict[str, float], raw: RawReading) -> ThrustFactors:
        raw_thrust = _check_reference('thrust', raw.thrust)
        return ThrustFactors(thrust_factor=known['known_weight'] / raw_thrust)


class ThreeAxisCalibration(CalibrationStrategy):
    """Calibrates thrust, voltage and current from one reference reading.

    The thrust factor uses the stand's convention (raw / known) because the
    stand divides its raw reading by it.
    """

    mode = 'three_axis'
    known_fields = ('known_weight', 'known_voltage', 'known_current')
    pushes_to_device = True

    def identity(self) -> ThreeAxisFactors:
        return ThreeAxisFactors()

    def compute(self, known: Dict[str, float], raw: RawReading) -> ThreeAxisFactors:
        raw_thrust = _check_reference('thrust', raw.thrust)
        raw_voltage = _check_reference('voltage', raw.voltage)
        raw_current = _check_reference('current', raw.current)
        return ThreeAxisFactors(
            thrust_factor=raw_thrust / known['known_weight'],
            voltage_factor=known['known_voltage'] / raw_voltage,
            current_factor=known['known_current'] / raw_current,
        )


STRATEGIES = {
    strategy.mode: strategy
    for strategy in (ThrustOnlyCalibration(), ThreeAxisCalibration())
}


def get_strategy(mode: str) -> CalibrationStrategy:
    try:
        return STRATEGIES[mode]
    except KeyError:
        raise InvalidInput(f'Unknown calibration mode {mode!r}; expected one of {sorted(STRATEGIES)}')


class CalibrationManager:
    """Runs calibrations and commits the resulting factor set."""

    def __init__(self, controller, default_mode: str = 'thrust'):
        self.controller = controller
        self.default_mode = default_mode

    def calibrate(self, known_values: Dict, raw_reading: RawReading, mode: Optional[str] = None):
        """Compute a factor set without committing it."""
        strategy = get_strategy(mode or self.default_mode)
        known = strategy.validate(known_values)
        return strategy.compute(known, raw_reading)

    def run_calibration(self, known_values: Dict, mode: Optional[str] = None):
        """Full workflow: validate, take a reference reading, compute, push, commit.

        Raises InvalidInput or SensorError; on either, the active factors and
        the buffers are left untouched.
        """
        strategy = get_strategy(mode or self.default_mode)
        # Reject bad operator input before touching the stand
        strategy.validate(known_values)

        with self.controller.command_lock:
            raw = self.controller.client.read_raw_reference()
            factors = self.calibrate(known_values, raw, strategy.mode)

            if strategy.pushes_to_device:
                self.controller.client.write_calibration_factor(factors.thrust_factor)

            self.controller.apply_calibration(factors)
        logger.info("Calibration applied: %s", factors.to_dict())
        return factors

    def get(self) -> Dict:
        """Active factor set."""
        return self.controller.session.factors.to_dict()
