"""Power estimation, energy accounting, sessions and the polling loop."""

from wattmon.engine.accumulator import EnergyAccumulator, kwh_increment
from wattmon.engine.broadcast import (
    BroadcastHub,
    BroadcastMessage,
    PublishChannel,
    Subscription,
)
from wattmon.engine.estimator import PowerEstimator
from wattmon.engine.scheduler import PollingScheduler
from wattmon.engine.sessions import SessionManager

__all__ = [
    "BroadcastHub",
    "BroadcastMessage",
    "EnergyAccumulator",
    "PollingScheduler",
    "PowerEstimator",
    "PublishChannel",
    "SessionManager",
    "Subscription",
    "kwh_increment",
]
