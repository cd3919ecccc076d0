"""
Correlation kernels compiled with Numba.

All kernels take float64 arrays where missing measurements are NaN and
release the GIL so that pair tests can run on a thread pool.
"""

import numpy as np
from numba import jit


@jit(nopython=True, nogil=True)
def pearson_correlation(x: np.ndarray, y: np.ndarray) -> float:
    """Pearson correlation of two equally sized, fully observed arrays."""
    n = x.shape[0]
    if n < 2:
        return 0.0

    mean_x = 0.0
    mean_y = 0.0
    for i in range(n):
        mean_x += x[i]
        mean_y += y[i]
    mean_x /= n
    mean_y /= n

    sxy = 0.0
    sxx = 0.0
    syy = 0.0
    for i in range(n):
        dx = x[i] - mean_x
        dy = y[i] - mean_y
        sxy += dx * dy
        sxx += dx * dx
        syy += dy * dy

    if sxx <= 0.0 or syy <= 0.0:
        return 0.0

    r = sxy / np.sqrt(sxx * syy)
    if r > 1.0:
        return 1.0
    if r < -1.0:
        return -1.0
    return r


@jit(nopython=True, nogil=True)
def lagged_correlation(x: np.ndarray, y: np.ndarray, lag: int):
    """
    Correlate x at t - lag with y at t.

    Boundary points and time steps where either value is missing are
    dropped. Returns (r, paired sample count).
    """
    n = x.shape[0]
    m = n - lag
    if m <= 0:
        return 0.0, 0

    xs = np.empty(m)
    ys = np.empty(m)
    k = 0
    for t in range(lag, n):
        a = x[t - lag]
        b = y[t]
        if np.isfinite(a) and np.isfinite(b):
            xs[k] = a
            ys[k] = b
            k += 1

    if k < 2:
        return 0.0, k
    return pearson_correlation(xs[:k], ys[:k]), k


@jit(nopython=True, nogil=True)
def lagged_correlation_profile(x: np.ndarray, y: np.ndarray, max_lag: int):
    """Lagged correlations and paired counts for lags 0..max_lag."""
    coefficients = np.zeros(max_lag + 1)
    counts = np.zeros(max_lag + 1, dtype=np.int64)
    for lag in range(max_lag + 1):
        r, k = lagged_correlation(x, y, lag)
        coefficients[lag] = r
        counts[lag] = k
    return coefficients, counts


@jit(nopython=True)
def monotonic_increase_fraction(cause: np.ndarray, effect: np.ndarray) -> float:
    """Fraction of consecutive steps where the effect rises, ordered by cause."""
    n = cause.shape[0]
    if n < 2:
        return 0.5

    order = np.argsort(cause, kind='mergesort')
    increases = 0
    decreases = 0
    for i in range(1, n):
        previous = effect[order[i - 1]]
        current = effect[order[i]]
        if current > previous:
            increases += 1
        elif current < previous:
            decreases += 1

    total = increases + decreases
    if total == 0:
        return 0.5
    return increases / total
