"""Application facade wiring the store, sensors, sessions and scheduler."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta

from wattmon.engine.broadcast import BroadcastHub
from wattmon.engine.estimator import PowerEstimator
from wattmon.engine.scheduler import PollingScheduler
from wattmon.engine.sessions import SessionManager
from wattmon.errors import SessionNotFoundError
from wattmon.models.config_models import AppConfig
from wattmon.models.power_models import ComponentReading, PowerSample
from wattmon.models.session_models import Session
from wattmon.sensors.base import SensorGateway
from wattmon.sensors.psutil_gateway import PsutilSensorGateway
from wattmon.storage.base import Store
from wattmon.storage.json_store import JsonStore
from wattmon.utils.clock import utc_now
from wattmon.utils.logger import Logger


class MonitorService:
    """Read and command operations over one monitoring installation.

    Everything here is a thin wrapper: reads go to the scheduler's published
    state or to the store, and session commands go through the
    SessionManager so they are serialized with the scheduler.

    Parameters
    ----------
    config : AppConfig
        Effective configuration.
    store : Store | None
        Defaults to a JsonStore under ``config.data_dir``.
    gateway : SensorGateway | None
        Defaults to the local psutil gateway.
    hub : BroadcastHub | None
        Defaults to a fresh in-process hub.
    clock : Callable[[], datetime]
        Source of "now" for sessions, samples and history windows.
    """

    def __init__(
        self,
        config: AppConfig,
        *,
        store: Store | None = None,
        gateway: SensorGateway | None = None,
        hub: BroadcastHub | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.config = config
        self.store = store or JsonStore(config.data_dir)
        self.gateway = gateway or PsutilSensorGateway()
        self.hub = hub or BroadcastHub()
        self.estimator = PowerEstimator(config.power)
        self.sessions = SessionManager(self.store, config.power, clock=clock)
        self.scheduler = PollingScheduler(
            self.gateway,
            self.store,
            self.sessions,
            self.hub,
            config.power,
            estimator=self.estimator,
            retry_backoff_seconds=config.retry_backoff_seconds,
            clock=clock,
        )
        self._clock = clock
        self._log = Logger.get("service")

    # -------------------------------------------------------------------------
    # Power
    # -------------------------------------------------------------------------

    def current_power(self) -> PowerSample | None:
        """Latest sample published by the scheduler, else the latest stored."""
        sample = self.scheduler.latest_sample
        if sample is not None:
            return sample
        return self.store.get_latest_sample()

    def current_components(self) -> list[ComponentReading]:
        """Latest component set.

        When the scheduler has not published anything and is not running,
        the hardware is read once and estimated on the spot.
        """
        components = self.scheduler.latest_components
        if components or self.scheduler.is_running:
            return list(components)

        self.gateway.open()
        try:
            snapshot = self.gateway.capture()
        finally:
            self.gateway.close()
        return list(self.estimator.estimate(snapshot).components)

    def history(self, hours: float = 24) -> list[PowerSample]:
        """Samples from the last ``hours`` hours across all sessions, oldest first.

        Raises
        ------
        ValueError
            If ``hours`` is not positive.
        """
        if hours <= 0:
            raise ValueError("hours must be greater than zero")
        since = self._clock() - timedelta(hours=hours)
        return self.store.get_samples_since(since)

    def session_samples(self, session_id: str) -> list[PowerSample]:
        """All samples recorded for a session, oldest first.

        Raises
        ------
        SessionNotFoundError
            If the session does not exist.
        """
        self.get_session(session_id)
        return self.store.get_samples_for_session(session_id)

    def totals(self) -> tuple[float, float]:
        """Accumulated kWh of the latest sample and its cost at the configured rate."""
        latest = self.current_power()
        total_kwh = latest.accumulated_kwh if latest is not None else 0.0
        return total_kwh, total_kwh * self.config.power.electricity_rate

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    def list_sessions(self) -> list[Session]:
        return self.sessions.get_all()

    def get_session(self, session_id: str) -> Session:
        """Fetch one session.

        Raises
        ------
        SessionNotFoundError
            If no session has this id.
        """
        session = self.sessions.get_by_id(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def current_session(self) -> Session | None:
        return self.sessions.get_current()

    def start_session(self) -> Session:
        return self.sessions.start_new()

    def end_session(self, session_id: str) -> Session:
        return self.sessions.end(session_id)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Start background polling."""
        self._log.info(f"Data directory: {self.config.data_dir}")
        self.scheduler.start()

    def stop(self, timeout: float | None = None) -> None:
        """Stop polling, end the open session and disconnect subscribers."""
        self.scheduler.stop(timeout)
        self.hub.close()
