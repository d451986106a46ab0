"""
One-euro adaptive low-pass filter.

A single-pole exponential smoother whose cutoff frequency follows the speed of
the signal: slow movement is smoothed heavily (less jitter), fast movement is
smoothed lightly (less lag).

Reference: Casiez, Roussel, Vogel. "1€ Filter: A Simple Speed-based Low-pass
Filter for Noisy Input in Interactive Systems" (CHI 2012).
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

import numpy as np


def smoothing_factor(rate_hz: float, cutoff_hz: float) -> float:
    """Return the exponential smoothing coefficient for a cutoff frequency.

    Parameters
    ----------
    rate_hz : float
        Sampling rate in Hz (> 0).
    cutoff_hz : float
        Cutoff frequency in Hz (> 0).

    Returns
    -------
    float
        ``alpha`` in (0, 1).
    """
    te = 1.0 / rate_hz
    tau = 1.0 / (2.0 * math.pi * cutoff_hz)
    return 1.0 / (1.0 + tau / te)


class LowPassFilter:
    """Exponential smoothing with a single state value and a mutable alpha."""

    def __init__(self, alpha: float, initial_value: float = 0.0) -> None:
        self._validate_alpha(alpha)
        self._alpha = alpha
        self._raw = initial_value
        self._filtered = initial_value
        self._initialized = False

    @staticmethod
    def _validate_alpha(alpha: float) -> None:
        if not 0.0 < alpha <= 1.0:
            raise ValueError(f"alpha must be in (0, 1], got {alpha}")

    @property
    def alpha(self) -> float:
        return self._alpha

    @property
    def initialized(self) -> bool:
        return self._initialized

    def filter(self, value: float) -> float:
        """Smooth ``value`` with the current alpha; the first sample passes through."""
        if self._initialized:
            result = self._alpha * value + (1.0 - self._alpha) * self._filtered
        else:
            result = value
            self._initialized = True
        self._raw = value
        self._filtered = result
        return result

    def filter_with_alpha(self, value: float, alpha: float) -> float:
        self._validate_alpha(alpha)
        self._alpha = alpha
        return self.filter(value)

    def has_last_raw_value(self) -> bool:
        return self._initialized

    @property
    def last_raw_value(self) -> float:
        return self._raw

    @property
    def last_filtered_value(self) -> float:
        return self._filtered

    def reset(self) -> None:
        self._initialized = False


class OneEuroFilter:
    """
    Speed-adaptive low-pass filter built from two ``LowPassFilter`` stages.

    The derivative of the signal is estimated from the last filtered value,
    smoothed with a fixed cutoff (``d_cutoff``), and used to raise the cutoff
    of the value stage: ``cutoff = min_cutoff + beta * |derivative|``.

    Parameters
    ----------
    freq : float
        Estimated sampling rate in Hz (> 0), used when timestamps are missing.
    min_cutoff : float
        Minimum cutoff frequency in Hz (> 0). Lower values remove more jitter.
    beta : float
        Speed coefficient (>= 0). Higher values reduce lag on fast movement.
    d_cutoff : float
        Cutoff frequency in Hz (> 0) for the derivative stage.
    """

    def __init__(
        self,
        freq: float,
        min_cutoff: float = 1.0,
        beta: float = 0.0,
        d_cutoff: float = 1.0,
    ) -> None:
        if freq <= 0:
            raise ValueError(f"freq must be > 0, got {freq}")
        if min_cutoff <= 0:
            raise ValueError(f"min_cutoff must be > 0, got {min_cutoff}")
        if d_cutoff <= 0:
            raise ValueError(f"d_cutoff must be > 0, got {d_cutoff}")
        if beta < 0:
            raise ValueError(f"beta must be >= 0, got {beta}")

        self._freq = float(freq)
        self._min_cutoff = float(min_cutoff)
        self._beta = float(beta)
        self._d_cutoff = float(d_cutoff)

        self._x = LowPassFilter(smoothing_factor(self._freq, self._min_cutoff))
        self._dx = LowPassFilter(smoothing_factor(self._freq, self._d_cutoff))
        self._last_time: Optional[float] = None
        self._last_cutoff = self._min_cutoff

    # -- configuration ---------------------------------------------------------

    @property
    def freq(self) -> float:
        return self._freq

    @property
    def min_cutoff(self) -> float:
        return self._min_cutoff

    @property
    def beta(self) -> float:
        return self._beta

    @property
    def d_cutoff(self) -> float:
        return self._d_cutoff

    @property
    def last_cutoff(self) -> float:
        """Cutoff frequency (Hz) applied to the value stage on the last call."""
        return self._last_cutoff

    # -- filtering -------------------------------------------------------------

    def reset(self) -> None:
        """Forget all samples and the last timestamp; parameters are kept."""
        self._x.reset()
        self._dx.reset()
        self._last_time = None
        self._last_cutoff = self._min_cutoff

    def filter(self, value: float, timestamp: Optional[float] = None) -> float:
        """
        Return the filtered value.

        Parameters
        ----------
        value : float
            Noisy sample.
        timestamp : float, optional
            Sample time in seconds. When both this and the previous timestamp
            are known and strictly increasing, the rate is derived from them.

        Returns
        -------
        float
        """
        rate = self._freq
        if self._last_time is not None and timestamp is not None:
            delta = timestamp - self._last_time
            if delta > 0:
                rate = 1.0 / delta
        self._last_time = timestamp

        if self._x.has_last_raw_value():
            dvalue = (value - self._x.last_filtered_value) * rate
        else:
            dvalue = 0.0
        edvalue = self._dx.filter_with_alpha(dvalue, smoothing_factor(rate, self._d_cutoff))

        cutoff = self._min_cutoff + self._beta * abs(edvalue)
        self._last_cutoff = cutoff
        return self._x.filter_with_alpha(value, smoothing_factor(rate, cutoff))

    def filter_series(
        self,
        values: Sequence[float],
        timestamps: Optional[Sequence[float]] = None,
    ) -> np.ndarray:
        """Filter a recorded stream in order and return the smoothed samples."""
        data = np.asarray(values, dtype=np.float64)
        if timestamps is not None and len(timestamps) != data.size:
            raise ValueError(
                f"timestamps length {len(timestamps)} does not match values length {data.size}"
            )

        out = np.empty_like(data)
        for i, value in enumerate(data):
            ts = None if timestamps is None else float(timestamps[i])
            out[i] = self.filter(float(value), ts)
        return out

    def __repr__(self) -> str:
        return (
            f"OneEuroFilter(freq={self._freq}, min_cutoff={self._min_cutoff}, "
            f"beta={self._beta}, d_cutoff={self._d_cutoff})"
        )
