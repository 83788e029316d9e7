"""Data model for telemetry samples."""

import logging
import math
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Dict, Optional

logger = logging.getLogger(__name__)

READING_FIELDS = ('thrust', 'voltage', 'current', 'rpm')


def to_number(value) -> float:
    """Coerce a raw field to float, mapping anything non-numeric to NaN."""
    if isinstance(value, bool):
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


class SamplingState(Enum):
    IDLE = 'idle'
    SAMPLING = 'sampling'


@dataclass(frozen=True)
class RawReading:
    """One uncalibrated sample as returned by the stand."""

    thrust: float
    voltage: float
    current: float
    rpm: float

    @classmethod
    def from_payload(cls, payload: Dict) -> 'RawReading':
        """Build a reading from a decoded JSON object.

        Missing or non-numeric fields become NaN instead of failing, so a
        single garbled field does not cost the whole sample.
        """
        values = {}
        for name in READING_FIELDS:
            values[name] = to_number(payload.get(name))
            if math.isnan(values[name]):
                logger.warning("Non-numeric %s in sensor payload: %r", name, payload.get(name))
        return cls(**values)


@dataclass(frozen=True)
class DerivedRecord:
    """Fully processed sample: calibrated values plus power and efficiency."""

    timestamp: float
    throttle: int
    thrust: float
    voltage: float
    current: float
    power: float
    rpm: float
    efficiency: float

    def to_dict(self, precision: Optional[int] = 2) -> Dict:
        """Presentation form: rounded, with NaN emitted as None."""
        data = asdict(self)
        for key, value in data.items():
            if key in ('timestamp', 'throttle'):
                continue
            if isinstance(value, float) and math.isnan(value):
                data[key] = None
            elif precision is not None:
                data[key] = round(value, precision)
        return data

    def has_nan(self) -> bool:
        return any(
            math.isnan(getattr(self, name))
            for name in ('thrust', 'voltage', 'current', 'power', 'rpm', 'efficiency')
        )
