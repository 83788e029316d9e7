"""Session summary analysis."""

import numpy as np
from scipy import integrate
from typing import Dict, Sequence

from models import DerivedRecord


class SessionAnalyzer:
    """Summarize a session's historical log."""

    MIN_SAMPLES = 2

    def __init__(self, records: Sequence[DerivedRecord]):
        """
        Initialize analyzer with derived records.

        Args:
            records: Historical log, oldest first
        """
        self.count = len(records)
        self.time = np.array([r.timestamp for r in records], dtype=float)
        self.throttle = np.array([r.throttle for r in records], dtype=float)
        self.thrust = np.array([r.thrust for r in records], dtype=float)
        self.power = np.array([r.power for r in records], dtype=float)
        self.rpm = np.array([r.rpm for r in records], dtype=float)
        self.efficiency = np.array([r.efficiency for r in records], dtype=float)
        self.nan_rows = int(sum(1 for r in records if r.has_nan()))

    @staticmethod
    def _nanmax(values: np.ndarray) -> float:
        if values.size == 0 or np.all(np.isnan(values)):
            return 0.0
        return float(np.nanmax(values))

    @staticmethod
    def _nanmean(values: np.ndarray) -> float:
        if values.size == 0 or np.all(np.isnan(values)):
            return 0.0
        return float(np.nanmean(values))

    def duration(self) -> float:
        """Time between first and last record (s)."""
        if self.count < 2:
            return 0.0
        return float(self.time[-1] - self.time[0])

    def peak_thrust(self) -> float:
        return self._nanmax(self.thrust)

    def average_thrust(self) -> float:
        return self._nanmean(self.thrust)

    def peak_power(self) -> float:
        return self._nanmax(self.power)

    def average_power(self) -> float:
        return self._nanmean(self.power)

    def peak_rpm(self) -> float:
        return self._nanmax(self.rpm)

    def _powered_mask(self) -> np.ndarray:
        with np.errstate(invalid='ignore'):
            return np.isfinite(self.efficiency) & (self.power > 0)

    def average_efficiency(self) -> float:
        """Mean efficiency over samples that drew power (g/W)."""
        mask = self._powered_mask()
        if not np.any(mask):
            return 0.0
        return float(np.mean(self.efficiency[mask]))

    def best_efficiency(self) -> Dict:
        """Highest efficiency and the throttle it was recorded at."""
        mask = self._powered_mask()
        if not np.any(mask):
            return {'efficiency': 0.0, 'throttle': None}
        indices = np.where(mask)[0]
        best = indices[np.argmax(self.efficiency[mask])]
        return {'efficiency': float(self.efficiency[best]), 'throttle': int(self.throttle[best])}

    def energy_wh(self) -> float:
        """Energy drawn over the session (Wh), trapezoidal over finite samples."""
        mask = np.isfinite(self.power) & np.isfinite(self.time)
        if np.sum(mask) < 2:
            return 0.0
        joules = integrate.trapezoid(self.power[mask], self.time[mask])
        return float(joules / 3600.0)

    def compute_all_metrics(self, precision: int = 2) -> Dict:
        """
        Compute the session summary.

        Returns:
            Dictionary containing all metrics
        """
        warnings = []

        if self.count < self.MIN_SAMPLES:
            warnings.append("Insufficient samples for a meaningful summary")
        if self.nan_rows:
            warnings.append(f"{self.nan_rows} sample(s) contained non-numeric readings")

        best = self.best_efficiency()

        return {
            'samples': self.count,
            'duration_s': round(self.duration(), 1),
            'peak_thrust_g': round(self.peak_thrust(), precision),
            'avg_thrust_g': round(self.average_thrust(), precision),
            'peak_power_w': round(self.peak_power(), precision),
            'avg_power_w': round(self.average_power(), precision),
            'avg_efficiency_gw': round(self.average_efficiency(), precision),
            'best_efficiency_gw': round(best['efficiency'], precision),
            'best_efficiency_throttle': best['throttle'],
            'peak_rpm': round(self.peak_rpm(), 0),
            'energy_wh': round(self.energy_wh(), 4),
            'nan_samples': self.nan_rows,
            'warnings': warnings,
        }
