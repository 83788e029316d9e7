"""Telemetry session state and the sampling controller."""

import logging
import math
import threading
import time
from typing import Callable, List, Optional

from buffers import TelemetryBuffers
from calibration import InvalidInput, ThrustFactors
from metrics import derive
from models import DerivedRecord, SamplingState, to_number
from sensor_client import SensorClient, SensorError

logger = logging.getLogger(__name__)


class TelemetrySession:
    """Mutable state of one dashboard session.

    Every mutation goes through ``lock``. ``generation`` is bumped on start,
    stop, reset and calibration so an in-flight read can tell that the
    session moved on while it was waiting.
    """

    def __init__(self, window_size: int = 20, throttle: int = 1000, factors=None):
        self.lock = threading.RLock()
        self.state = SamplingState.IDLE
        self.factors = factors or ThrustFactors()
        self.throttle = throttle
        self.buffers = TelemetryBuffers(window_size)
        self.generation = 0

    @property
    def sampling(self) -> bool:
        return self.state is SamplingState.SAMPLING

    def replace_factors(self, factors):
        """Swap in a new factor set and drop pre-calibration data."""
        with self.lock:
            self.factors = factors
            self.buffers.reset()
            self.generation += 1

    def reset(self):
        with self.lock:
            self.buffers.reset()
            self.generation += 1


class SamplingController:
    """Idle/Sampling state machine driving one acquisition cycle per tick.

    Presentation sinks are plain objects; any of these methods they define
    are called: ``on_record(record)``, ``on_state_change(state)``,
    ``on_log_ready(records)``, ``on_reset()``.
    """

    def __init__(self, session: TelemetrySession, client: SensorClient,
                 sinks: List = None, clock: Callable[[], float] = time.time,
                 throttle_min: int = 1000, throttle_max: int = 2000):
        self.session = session
        self.client = client
        self.sinks = list(sinks or [])
        self.clock = clock
        self.throttle_min = throttle_min
        self.throttle_max = throttle_max

        # Held across a device write and the matching session commit
        self.command_lock = threading.Lock()
        self._cycle_lock = threading.Lock()
        self._shutdown = threading.Event()

    @property
    def state(self) -> SamplingState:
        return self.session.state

    def add_sink(self, sink):
        self.sinks.append(sink)

    def _notify(self, event: str, *args):
        for sink in self.sinks:
            handler = getattr(sink, event, None)
            if handler is not None:
                handler(*args)

    # Commands

    def start(self) -> bool:
        """Enter Sampling. Returns False if already sampling."""
        with self.session.lock:
            if self.session.sampling:
                return False
            self.session.state = SamplingState.SAMPLING
            self.session.generation += 1

        logger.info("Sampling started")
        self.client.start_sampling()
        self._notify('on_state_change', SamplingState.SAMPLING)
        return True

    def stop(self) -> bool:
        """Return to Idle and announce the log as final. False if already idle."""
        with self.session.lock:
            if not self.session.sampling:
                return False
            self.session.state = SamplingState.IDLE
            self.session.generation += 1
            records = self.session.buffers.log_snapshot()

        logger.info("Sampling stopped. Records in log: %d", len(records))
        self.client.stop_sampling()
        self._notify('on_state_change', SamplingState.IDLE)
        self._notify('on_log_ready', records)
        return True

    def set_throttle(self, value) -> int:
        """Send a throttle command (us). The stored value changes only once the stand accepts it."""
        number = to_number(value)
        if math.isnan(number) or not self.throttle_min <= number <= self.throttle_max:
            raise InvalidInput(
                f'Throttle must be between {self.throttle_min} and {self.throttle_max} us, got {value!r}'
            )
        throttle = int(round(number))

        with self.command_lock:
            self.client.write_throttle(throttle)
            with self.session.lock:
                self.session.throttle = throttle
        logger.debug("Throttle set to %d us", throttle)
        return throttle

    def reset(self):
        self.session.reset()
        logger.info("Telemetry buffers cleared")
        self._notify('on_reset')

    def apply_calibration(self, factors):
        self.session.replace_factors(factors)
        self._notify('on_reset')

    # Acquisition

    def tick(self) -> Optional[DerivedRecord]:
        """Run one acquisition cycle if sampling.

        Returns the appended record, or None when idle, when the read failed,
        when the result went stale, or when another cycle is still running.
        """
        if not self._cycle_lock.acquire(blocking=False):
            logger.warning("Previous acquisition cycle still running; tick dropped")
            return None
        try:
            with self.session.lock:
                if not self.session.sampling:
                    return None
                generation = self.session.generation

            try:
                raw = self.client.read_once()
            except SensorError as e:
                logger.debug("Read skipped: %s", e)
                return None

            with self.session.lock:
                if not self.session.sampling or self.session.generation != generation:
                    logger.debug("Discarding read that completed after a state change")
                    return None
                record = derive(raw, self.session.factors, self.session.throttle, self.clock())
                self.session.buffers.append(record)

            self._notify('on_record', record)
            return record
        finally:
            self._cycle_lock.release()

    def run(self, period: float = 1.0, sleep: Callable[[float], None] = time.sleep,
            monotonic: Callable[[], float] = time.monotonic):
        """Tick loop on a fixed period; returns after shutdown().

        Time spent in a cycle is taken off the following sleep.
        """
        logger.info("Tick loop running every %.2fs", period)
        delay = period
        while not self._shutdown.is_set():
            sleep(delay)
            started = monotonic()
            try:
                self.tick()
            except Exception:
                logger.exception("Acquisition cycle failed")
            delay = max(0.0, period - (monotonic() - started))

    def shutdown(self):
        self._shutdown.set()
