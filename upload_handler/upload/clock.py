import time
from typing import Protocol


class Clock(Protocol):
    """Source of non-decreasing timestamps in milliseconds."""

    def now_ms(self) -> float: ...


class MonotonicClock:
    """Wall-clock intervals backed by time.monotonic()."""

    def now_ms(self) -> float:
        return time.monotonic() * 1000


class ManualClock:
    """Clock that only moves when told to.

    Readings are either advanced explicitly or served from a scripted list,
    one value per call. When the script runs out the last reading repeats.
    """

    def __init__(self, start_ms: float = 0, readings: list[float] | None = None) -> None:
        self._now = start_ms
        self._readings = list(readings or [])

    def now_ms(self) -> float:
        if self._readings:
            next_reading = self._readings.pop(0)
            if next_reading < self._now:
                raise ValueError(
                    f"Clock reading {next_reading} is earlier than {self._now}"
                )
            self._now = next_reading
        return self._now

    def advance(self, delta_ms: float) -> None:
        if delta_ms < 0:
            raise ValueError("Clock cannot move backwards")
        self._now += delta_ms
