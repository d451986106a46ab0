"""Componentwise one-euro smoothing for 3-axis signals."""

from __future__ import annotations

from typing import NamedTuple, Optional

from sxm.filters.one_euro import OneEuroFilter


class Vector3(NamedTuple):
    x: float
    y: float
    z: float


class Vector3Filter:
    """
    Three independent ``OneEuroFilter`` instances, one per axis.

    Axes share configuration but no state; there is no cross-axis coupling.
    """

    def __init__(
        self,
        freq: float,
        min_cutoff: float = 1.0,
        beta: float = 0.0,
        d_cutoff: float = 1.0,
    ) -> None:
        self._x_filter = OneEuroFilter(freq, min_cutoff, beta, d_cutoff)
        self._y_filter = OneEuroFilter(freq, min_cutoff, beta, d_cutoff)
        self._z_filter = OneEuroFilter(freq, min_cutoff, beta, d_cutoff)

    def filter(
        self,
        x: float,
        y: float,
        z: float,
        timestamp: Optional[float] = None,
    ) -> Vector3:
        return Vector3(
            self._x_filter.filter(x, timestamp),
            self._y_filter.filter(y, timestamp),
            self._z_filter.filter(z, timestamp),
        )

    def filter_vector(self, vector: Vector3, timestamp: Optional[float] = None) -> Vector3:
        return self.filter(vector.x, vector.y, vector.z, timestamp)

    def reset(self) -> None:
        self._x_filter.reset()
        self._y_filter.reset()
        self._z_filter.reset()
