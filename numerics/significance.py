"""
Significance tests for correlation coefficients.
"""

import math
from typing import Tuple

from scipy import stats


def correlation_t_statistic(r: float, n: int) -> float:
    """t statistic of a Pearson correlation over n paired samples."""
    if n < 3:
        return 0.0
    denominator = max(1.0 - r * r, 1e-12)
    return r * math.sqrt((n - 2) / denominator)


def correlation_p_value(r: float, n: int) -> float:
    """Two-sided p-value for H0: rho == 0."""
    if n < 3:
        return 1.0
    if abs(r) >= 1.0:
        return 0.0
    t_stat = correlation_t_statistic(r, n)
    return float(2.0 * stats.t.sf(abs(t_stat), n - 2))


def is_significant(r: float, n: int, min_correlation: float, alpha: float) -> Tuple[bool, float]:
    """Return (clears threshold, p-value) for one coefficient."""
    p_value = correlation_p_value(r, n)
    return abs(r) >= min_correlation and p_value <= alpha, p_value


def partial_correlation(r_xy: float, r_xz: float, r_yz: float) -> float:
    """First-order partial correlation of x and y controlling for z."""
    denominator = math.sqrt(max((1.0 - r_xz * r_xz) * (1.0 - r_yz * r_yz), 0.0))
    if denominator < 1e-10:
        return 0.0
    value = (r_xy - r_xz * r_yz) / denominator
    return max(-1.0, min(1.0, value))
