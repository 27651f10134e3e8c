"""Running energy total integrated from instantaneous power."""

from __future__ import annotations

import math


def kwh_increment(power_watts: float, interval_seconds: float) -> float:
    """Energy drawn at ``power_watts`` for ``interval_seconds``, in kWh."""
    return (power_watts / 1000) * (interval_seconds / 3600)


class EnergyAccumulator:
    """Monotonic kWh counter.

    The counter runs for the lifetime of its owner and is never reset; a new
    session does not zero it.

    Parameters
    ----------
    initial_kwh : float
        Starting value. Must be finite and non-negative.
    """

    def __init__(self, initial_kwh: float = 0.0) -> None:
        if not math.isfinite(initial_kwh) or initial_kwh < 0:
            raise ValueError("initial_kwh must be a finite, non-negative number")
        self._value = initial_kwh

    @property
    def value(self) -> float:
        """Current accumulated energy in kWh."""
        return self._value

    def integrate(self, power_watts: float, interval_seconds: float) -> float:
        """Add the energy drawn over one interval and return the new total.

        Non-finite or negative power contributes nothing, which keeps the
        counter non-decreasing.

        Parameters
        ----------
        power_watts : float
            Instantaneous power draw.
        interval_seconds : float
            Length of the interval the power applies to.

        Returns
        -------
        float
            The new accumulated value in kWh.

        Raises
        ------
        ValueError
            If ``interval_seconds`` is not positive.
        """
        if not interval_seconds > 0:
            raise ValueError("interval_seconds must be greater than zero")

        if math.isfinite(power_watts) and power_watts > 0:
            self._value += kwh_increment(power_watts, interval_seconds)
        return self._value
