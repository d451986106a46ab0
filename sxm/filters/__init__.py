"""
Signal smoothing filters.

Components:
    - one_euro: LowPassFilter and the speed-adaptive OneEuroFilter
    - vector: Vector3Filter, componentwise smoothing of 3-axis samples
"""

from sxm.filters.one_euro import LowPassFilter, OneEuroFilter, smoothing_factor
from sxm.filters.vector import Vector3, Vector3Filter

__all__ = [
    "LowPassFilter",
    "OneEuroFilter",
    "smoothing_factor",
    "Vector3",
    "Vector3Filter",
]
