"""Tests for telemetry and session data models."""

from datetime import datetime, timedelta, timezone

import pytest

from wattmon.models.power_models import (
    ComponentKind,
    ComponentReading,
    PowerEstimate,
    PowerSample,
)
from wattmon.models.session_models import Session, SessionState

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestPowerSample:
    """Tests for PowerSample serialization."""

    def test_to_dict(self):
        """Timestamps serialize as ISO 8601."""
        sample = PowerSample(
            timestamp=T0,
            power_watts=180.5,
            accumulated_kwh=0.25,
            session_id="s1",
            cpu_util_pct=30.0,
        )
        data = sample.to_dict()
        assert data["timestamp"] == "2024-01-01T12:00:00+00:00"
        assert data["power_watts"] == 180.5
        assert data["cpu_util_pct"] == 30.0
        assert data["gpu_util_pct"] == 0.0

    def test_from_dict_defaults_utilization(self):
        """Older rows without utilization fields still load."""
        sample = PowerSample.from_dict(
            {
                "timestamp": "2024-01-01T12:00:00",
                "power_watts": 100,
                "accumulated_kwh": 0.1,
                "session_id": "s1",
            }
        )
        assert sample.timestamp == T0
        assert sample.mem_util_pct == 0.0

    def test_frozen(self):
        """Samples are immutable."""
        sample = PowerSample(T0, 1.0, 0.0, "s1")
        with pytest.raises(AttributeError):
            sample.power_watts = 2.0


class TestComponentReading:
    """Tests for ComponentReading."""

    def test_to_dict(self):
        """Kind serializes by value and power is rounded."""
        reading = ComponentReading(
            id="psu",
            name="Power Supply",
            kind=ComponentKind.PSU,
            model="Estimated",
            power_watts=20.73751,
        )
        data = reading.to_dict()
        assert data["kind"] == "psu"
        assert data["power_watts"] == 20.738
        assert data["utilization_pct"] is None


class TestPowerEstimate:
    """Tests for PowerEstimate lookups."""

    def test_lookups(self):
        """Components can be found by id and filtered by kind."""
        cpu = ComponentReading("cpu", "CPU", ComponentKind.PROCESSOR, "X", 50.0)
        ssd = ComponentReading("storage0", "SSD", ComponentKind.STORAGE, "S", 2.0)
        hdd = ComponentReading("storage1", "HDD", ComponentKind.STORAGE, "H", 4.0)
        estimate = PowerEstimate(95.0, (cpu, ssd, hdd))

        assert estimate.get_component("cpu") is cpu
        assert estimate.get_component("gpu") is None
        assert estimate.by_kind(ComponentKind.STORAGE) == [ssd, hdd]


class TestSession:
    """Tests for the Session model."""

    def test_open_session(self):
        """A session without an end time is open."""
        session = Session(id="s1", start_time=T0)
        assert session.state == SessionState.OPEN
        assert session.is_open
        assert session.duration_s is None

    def test_closed_copy(self):
        """closed() returns a new closed session and leaves the original."""
        session = Session(id="s1", start_time=T0)
        closed = session.closed(T0 + timedelta(minutes=30), 1.2, 1445.0)

        assert session.is_open
        assert closed.state == SessionState.CLOSED
        assert closed.duration_s == 1800.0
        assert closed.total_cost == pytest.approx(1734.0)

    def test_dict_round_trip(self):
        """to_dict/from_dict preserve every field."""
        closed = Session(id="s1", start_time=T0).closed(
            T0 + timedelta(hours=1), 0.5, 2.0
        )
        data = closed.to_dict()
        assert data["state"] == "closed"
        assert Session.from_dict(data) == closed
