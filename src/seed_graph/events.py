"""
Temporal event synthesis.

Samples `total` timestamps inside a time window whose density follows a named
activity curve. Used for per-recipient email events, where most activity
happens right after a send and decays over the following days.

Curves are defined as a decaying density profile over v in [0, 1]:

    shape         density(v)
    -----------   ----------
    flat          1
    linear        1 - v
    ease-out      (1 - v)^2
    ease-in       1 - v^3
    exponential   exp(-5 v)

The trend picks the direction in time: with "negative" v is the elapsed
fraction of the window (density decreases over time); with "positive" v runs
backwards from the end of the window (density increases over time).

Timestamps are returned in ascending order. Consumers treat the front of the
list as the next event.
"""

from __future__ import annotations

from collections import deque
from datetime import datetime, timedelta
from typing import Callable

import numpy as np

GRID_POINTS = 1024

SHAPES: dict[str, Callable[[np.ndarray], np.ndarray]] = {
    "flat": lambda v: np.ones_like(v),
    "linear": lambda v: 1.0 - v,
    "ease-out": lambda v: (1.0 - v) ** 2,
    "ease-in": lambda v: 1.0 - v ** 3,
    "exponential": lambda v: np.exp(-5.0 * v),
}

TRENDS = ("positive", "negative")


def event_cdf(shape: str, trend: str) -> tuple[np.ndarray, np.ndarray]:
    """
    Build the cumulative distribution of a curve on a fixed grid.

    Returns:
        (u, cdf) arrays, with u the elapsed fraction of the window and cdf
        rising from 0 to 1
    """
    if shape not in SHAPES:
        raise ValueError(f"Unknown event shape: {shape!r} (expected one of {sorted(SHAPES)})")
    if trend not in TRENDS:
        raise ValueError(f"Unknown event trend: {trend!r} (expected one of {TRENDS})")

    u = np.linspace(0.0, 1.0, GRID_POINTS)
    v = u if trend == "negative" else 1.0 - u
    density = SHAPES[shape](v)

    # Trapezoid integration; a tiny floor keeps the CDF strictly increasing
    density = np.maximum(density, 1e-9)
    steps = (density[1:] + density[:-1]) / 2.0 * np.diff(u)
    cdf = np.concatenate(([0.0], np.cumsum(steps)))
    return u, cdf / cdf[-1]


def generate_events(
    total: int,
    start_time: datetime,
    end_time: datetime,
    shape: str = "ease-out",
    trend: str = "negative",
    rng: np.random.Generator | None = None,
) -> list[datetime]:
    """
    Sample timestamps whose density follows a named curve.

    Args:
        total: Number of timestamps to produce
        start_time: Window start (inclusive)
        end_time: Window end (inclusive)
        shape: Curve name (see module docstring)
        trend: "negative" for decaying activity, "positive" for growing
        rng: NumPy generator to draw from

    Returns:
        `total` timestamps, ascending, each within [start_time, end_time]

    Raises:
        ValueError: On a negative total, reversed window, or unknown curve
    """
    if total < 0:
        raise ValueError(f"total must be non-negative, got {total}")
    if end_time < start_time:
        raise ValueError(f"end_time {end_time} is before start_time {start_time}")

    u, cdf = event_cdf(shape, trend)
    if total == 0:
        return []

    if rng is None:
        rng = np.random.default_rng()

    # Inverse-CDF sampling
    fractions = np.interp(rng.random(total), cdf, u)
    fractions = np.clip(np.sort(fractions), 0.0, 1.0)

    window_seconds = (end_time - start_time).total_seconds()
    offsets = np.floor(fractions * window_seconds)
    return [start_time + timedelta(seconds=float(offset)) for offset in offsets]


class EventQueue:
    """
    Owns a sequence of event timestamps and hands them out front-first.

    Each timestamp is consumed exactly once.
    """

    __slots__ = ("_events",)

    def __init__(self, events: list[datetime] | None = None) -> None:
        self._events: deque[datetime] = deque(events or [])

    def __len__(self) -> int:
        return len(self._events)

    def pop(self) -> datetime | None:
        """Take the next event, or None when the queue is exhausted."""
        if not self._events:
            return None
        return self._events.popleft()
