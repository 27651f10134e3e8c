"""Background polling loop: sense, estimate, integrate, persist, publish."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime
from typing import Any, TypeVar

from wattmon.engine.accumulator import EnergyAccumulator
from wattmon.engine.broadcast import TOPIC_SESSION, BroadcastHub
from wattmon.engine.estimator import PowerEstimator
from wattmon.engine.sessions import SessionManager
from wattmon.errors import FatalInitError, TransientIOError
from wattmon.models.config_models import PowerConfig
from wattmon.models.power_models import ComponentReading, PowerSample
from wattmon.sensors.base import SensorGateway
from wattmon.storage.base import Store
from wattmon.utils.clock import utc_now
from wattmon.utils.logger import Logger

T = TypeVar("T")


class PollingScheduler:
    """Periodic driver that records one power sample per tick.

    The scheduler thread is the only writer of the energy accumulator and
    of the cached session id. Other threads read the latest sample and
    component set through lock-guarded properties.

    Args:
        gateway: Hardware sensor source; opened by ``run()``.
        store: Persistence for samples.
        sessions: Session lifecycle manager.
        hub: Channel receiving each tick's update after it is persisted.
        config: Power settings (interval, TDPs, rate).
        estimator: Power estimator; built from ``config`` when omitted.
        accumulator: Running kWh total; starts at zero when omitted.
        retry_backoff_seconds: Wait after a failed tick.
        clock: Source of sample timestamps.
    """

    def __init__(
        self,
        gateway: SensorGateway,
        store: Store,
        sessions: SessionManager,
        hub: BroadcastHub,
        config: PowerConfig,
        *,
        estimator: PowerEstimator | None = None,
        accumulator: EnergyAccumulator | None = None,
        retry_backoff_seconds: float = 5.0,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if retry_backoff_seconds <= 0:
            raise ValueError("retry_backoff_seconds must be greater than zero")

        self._gateway = gateway
        self._store = store
        self._sessions = sessions
        self._hub = hub
        self._config = config
        self._estimator = estimator or PowerEstimator(config)
        self._accumulator = accumulator or EnergyAccumulator()
        self._retry_backoff = retry_backoff_seconds
        self._clock = clock

        self._stop_event = threading.Event()
        self._state_lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._latest_sample: PowerSample | None = None
        self._latest_components: tuple[ComponentReading, ...] = ()
        self._session_id: str | None = None
        self._session_closed = False
        self.error: BaseException | None = None
        self._log = Logger.get("engine.scheduler")

    # -------------------------------------------------------------------------
    # Published state
    # -------------------------------------------------------------------------

    @property
    def interval_seconds(self) -> float:
        return self._config.sample_interval_seconds

    @property
    def accumulated_kwh(self) -> float:
        return self._accumulator.value

    @property
    def latest_sample(self) -> PowerSample | None:
        with self._state_lock:
            return self._latest_sample

    @property
    def latest_components(self) -> tuple[ComponentReading, ...]:
        with self._state_lock:
            return self._latest_components

    @property
    def current_session_id(self) -> str | None:
        with self._state_lock:
            return self._session_id

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # -------------------------------------------------------------------------
    # One iteration
    # -------------------------------------------------------------------------

    def _bounded(self, what: str, fn: Callable[..., T], *args: Any) -> T:
        """Run ``fn`` on the I/O executor, giving up after one interval."""
        if self._executor is None:
            return fn(*args)

        future = self._executor.submit(fn, *args)
        try:
            return future.result(timeout=self.interval_seconds)
        except FutureTimeoutError as exc:
            future.cancel()
            raise TransientIOError(
                f"{what} did not finish within {self.interval_seconds:g}s"
            ) from exc

    def _remember_session(self, session_id: str) -> None:
        with self._state_lock:
            if session_id != self._session_id:
                self._log.info(f"Recording into session {session_id}")
            self._session_id = session_id

    def tick(self) -> PowerSample:
        """Record one sample into the open session and publish it.

        Returns:
            The persisted PowerSample.

        Raises:
            TransientIOError: The session check, sensor capture or sample
                write failed or timed out.
        """
        session = self._bounded("Session check", self._sessions.ensure_open)
        self._remember_session(session.id)

        snapshot = self._bounded("Sensor capture", self._gateway.capture)
        estimate = self._estimator.estimate(snapshot)
        accumulated = self._accumulator.integrate(
            estimate.total_power_watts, self.interval_seconds
        )

        sample = PowerSample(
            timestamp=self._clock(),
            power_watts=estimate.total_power_watts,
            accumulated_kwh=accumulated,
            session_id=session.id,
            cpu_util_pct=estimate.cpu_util_pct,
            gpu_util_pct=estimate.gpu_util_pct,
            mem_util_pct=estimate.mem_util_pct,
        )
        sample, session = self._bounded(
            "Sample write", self._sessions.record_sample, sample
        )
        self._remember_session(session.id)

        with self._state_lock:
            self._latest_sample = sample
            self._latest_components = estimate.components

        self._hub.publish_update(sample, estimate.components, session)
        self._log.debug(
            f"Sample {sample.power_watts:.1f}W, {sample.accumulated_kwh:.6f} kWh"
        )
        return sample

    # -------------------------------------------------------------------------
    # Loop
    # -------------------------------------------------------------------------

    def run(self) -> None:
        """Poll until ``stop()`` is called.

        Raises:
            FatalInitError: The sensor gateway could not be opened. Any open
                session has already been ended when this propagates.
        """
        self._session_closed = False
        self.error = None
        self._executor = ThreadPoolExecutor(
            max_workers=2, thread_name_prefix="wattmon-io"
        )
        self._log.info(
            f"Polling every {self.interval_seconds:g}s "
            f"(rate {self._config.electricity_rate:g}/kWh)"
        )

        try:
            self._gateway.open()
            while not self._stop_event.is_set():
                started = time.monotonic()
                try:
                    self.tick()
                except FatalInitError:
                    raise
                except Exception as exc:
                    self._log.error(
                        f"Error occurred while polling hardware metrics: {exc}"
                    )
                    self._stop_event.wait(self._retry_backoff)
                    continue

                remaining = self.interval_seconds - (time.monotonic() - started)
                if remaining > 0:
                    self._stop_event.wait(remaining)
        except FatalInitError as exc:
            self.error = exc
            self._log.critical(f"Sensor subsystem failed to initialize: {exc}")
            raise
        finally:
            self._close_session()
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
            try:
                self._gateway.close()
            except Exception as exc:
                self._log.warning(f"Error closing sensor gateway: {exc}")
            self._log.info("Polling stopped")

    def _close_session(self) -> None:
        """End the session this run recorded into, at most once."""
        if self._session_closed:
            return
        self._session_closed = True

        try:
            session_id = self.current_session_id
            if session_id is None:
                current = self._sessions.get_current()
                session_id = current.id if current is not None else None
            if session_id is None:
                return

            closed = self._sessions.end(session_id)
            self._hub.publish(TOPIC_SESSION, closed.to_dict())
        except Exception as exc:
            self._log.error(f"Error ending session when stopping service: {exc}")

    # -------------------------------------------------------------------------
    # Thread management
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Run the loop on a daemon thread."""
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_thread, daemon=True, name="wattmon-scheduler"
        )
        self._thread.start()

    def _run_thread(self) -> None:
        try:
            self.run()
        except FatalInitError:
            # Already logged and stored on self.error.
            return

    def request_stop(self) -> None:
        """Ask the loop to exit without waiting for it."""
        self._stop_event.set()

    def stop(self, timeout: float | None = None) -> None:
        """Stop the loop and wait for the thread to exit.

        Args:
            timeout: Maximum seconds to wait for the thread; None waits
                indefinitely.
        """
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the loop thread exits; True if it has."""
        thread = self._thread
        if thread is None:
            return True
        thread.join(timeout)
        return not thread.is_alive()
