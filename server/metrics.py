"""Derived metrics for one telemetry sample."""

from models import DerivedRecord, RawReading


def power(voltage: float, current: float) -> float:
    """Electrical power (W)."""
    return voltage * current


def efficiency(raw_thrust: float, voltage: float, current: float) -> float:
    """Thrust per watt x100 (g/W), or 0 when there is no power draw.

    Uses the raw thrust against calibrated power, matching the stand's
    documented efficiency figures.
    """
    if current == 0 or voltage == 0:
        return 0.0
    watts = power(voltage, current)
    if watts == 0:  # Underflow of a tiny product
        return 0.0
    return (raw_thrust / watts) * 100


def derive(raw: RawReading, factors, throttle: int, timestamp: float) -> DerivedRecord:
    """
    Produce a derived record from a raw reading.

    Args:
        raw: Uncalibrated reading from the stand
        factors: Active factor set (ThrustFactors or ThreeAxisFactors)
        throttle: Commanded throttle at the time of the read (us)
        timestamp: Unix time of the read (s)

    Values are kept at full precision; rounding happens at presentation.
    NaN fields propagate rather than raising.
    """
    thrust, voltage, current = factors.apply(raw)

    return DerivedRecord(
        timestamp=timestamp,
        throttle=throttle,
        thrust=thrust,
        voltage=voltage,
        current=current,
        power=power(voltage, current),
        rpm=raw.rpm,
        efficiency=efficiency(raw.thrust, voltage, current),
    )
