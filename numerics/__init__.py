"""
Causal Analysis Numerics
Statistical primitives shared by the reasoning components

This module contains:
- Kernels: Numba-compiled lagged correlation routines
- Significance: correlation and partial-correlation tests
- Series: observation matrix construction, lag alignment and dispersion
"""

from .kernels import (
    pearson_correlation,
    lagged_correlation,
    lagged_correlation_profile,
    monotonic_increase_fraction
)
from .significance import (
    correlation_p_value,
    correlation_t_statistic,
    is_significant,
    partial_correlation
)
from .series import ObservationMatrix, align_lagged, relative_dispersion, sort_observations

__all__ = [
    "pearson_correlation",
    "lagged_correlation",
    "lagged_correlation_profile",
    "monotonic_increase_fraction",
    "correlation_p_value",
    "correlation_t_statistic",
    "is_significant",
    "partial_correlation",
    "ObservationMatrix",
    "align_lagged",
    "relative_dispersion",
    "sort_observations"
]
