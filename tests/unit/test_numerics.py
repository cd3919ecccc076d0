"""
Unit tests for the numerics package
Tests the Numba correlation kernels, significance tests and lag alignment
"""

import pytest
import numpy as np
import sys
import os
from datetime import datetime, timedelta

# Add the project root to the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../..'))

from core.models import Observation
from numerics.kernels import (
    pearson_correlation, lagged_correlation, lagged_correlation_profile,
    monotonic_increase_fraction
)
from numerics.significance import (
    correlation_p_value, correlation_t_statistic, is_significant, partial_correlation
)
from numerics.series import ObservationMatrix, align_lagged, relative_dispersion, sort_observations


class TestCorrelationKernels:
    """Test the compiled correlation kernels."""

    def setup_method(self):
        rng = np.random.default_rng(0)
        self.x = rng.normal(size=200)

    def test_perfect_linear_correlation(self):
        """Test that an exact linear relation gives r = 1 or -1."""
        assert pearson_correlation(self.x, 3.0 * self.x + 2.0) == pytest.approx(1.0)
        assert pearson_correlation(self.x, -0.5 * self.x) == pytest.approx(-1.0)

    def test_constant_series_has_zero_correlation(self):
        """Test zero-variance input returns 0 instead of NaN."""
        assert pearson_correlation(self.x, np.ones_like(self.x)) == 0.0

    def test_lagged_correlation_finds_shift(self):
        """Test that y[t] = x[t-2] is perfectly correlated at lag 2 only."""
        y = np.empty_like(self.x)
        y[:2] = 0.0
        y[2:] = self.x[:-2]

        r, count = lagged_correlation(self.x, y, 2)
        assert r == pytest.approx(1.0)
        assert count == len(self.x) - 2

        r0, _ = lagged_correlation(self.x, y, 0)
        assert abs(r0) < 0.3

    def test_lagged_correlation_drops_missing_values(self):
        """Test that NaN measurements are excluded from the pairing."""
        y = 2.0 * self.x
        y[10:20] = np.nan
        r, count = lagged_correlation(self.x, y, 0)
        assert r == pytest.approx(1.0)
        assert count == len(self.x) - 10

    def test_lag_longer_than_series(self):
        """Test that a lag beyond the series yields no samples."""
        r, count = lagged_correlation(self.x[:5], self.x[:5], 10)
        assert r == 0.0
        assert count == 0

    def test_profile_shapes(self):
        """Test the profile covers lags 0..max_lag."""
        coefficients, counts = lagged_correlation_profile(self.x, self.x, 3)
        assert coefficients.shape == (4,)
        assert list(counts) == [200, 199, 198, 197]
        assert coefficients[0] == pytest.approx(1.0)

    def test_monotonic_increase_fraction(self):
        """Test the dose-response fraction for increasing and decreasing effects."""
        cause = np.arange(20, dtype=np.float64)
        assert monotonic_increase_fraction(cause, cause * 2.0) == pytest.approx(1.0)
        assert monotonic_increase_fraction(cause, -cause) == pytest.approx(0.0)
        assert monotonic_increase_fraction(cause, np.ones(20)) == pytest.approx(0.5)


class TestSignificance:
    """Test correlation significance helpers."""

    def test_p_value_decreases_with_sample_size(self):
        """Test that the same r is more significant with more samples."""
        assert correlation_p_value(0.4, 100) < correlation_p_value(0.4, 20)

    def test_p_value_edge_cases(self):
        """Test degenerate inputs."""
        assert correlation_p_value(0.9, 2) == 1.0
        assert correlation_p_value(1.0, 30) == 0.0
        assert correlation_p_value(0.0, 30) == pytest.approx(1.0)

    def test_t_statistic_sign(self):
        """Test the t statistic carries the sign of r."""
        assert correlation_t_statistic(-0.5, 30) < 0
        assert correlation_t_statistic(0.5, 30) > 0

    def test_is_significant_requires_both_thresholds(self):
        """Test that strength and p-value must both clear."""
        clears, p_value = is_significant(0.7, 50, 0.3, 0.05)
        assert clears
        assert p_value < 0.001

        clears, _ = is_significant(0.25, 500, 0.3, 0.05)
        assert not clears

        clears, _ = is_significant(0.5, 8, 0.3, 0.05)
        assert not clears

    def test_partial_correlation(self):
        """Test partial correlation removes a common driver."""
        # x and y correlate only through z
        assert partial_correlation(0.5, 0.5 ** 0.5, 0.5 ** 0.5) == pytest.approx(0.0, abs=1e-12)
        assert partial_correlation(0.6, 0.0, 0.0) == pytest.approx(0.6)
        assert partial_correlation(0.9, 1.0, 0.9) == 0.0


class TestObservationMatrix:
    """Test observation matrix construction."""

    def setup_method(self):
        start = datetime(2025, 1, 1)
        self.observations = [
            Observation(start + timedelta(hours=2), {'A': 3.0, 'B': 30.0}),
            Observation(start, {'A': 1.0}),
            Observation(start + timedelta(hours=1), {'A': 2.0, 'B': 20.0, 'C': None}),
        ]

    def test_sorting_is_stable_and_non_mutating(self):
        """Test observations are sorted by timestamp without touching the input."""
        ordered = sort_observations(self.observations)
        assert [o.variables['A'] for o in ordered] == [1.0, 2.0, 3.0]
        assert self.observations[0].variables['A'] == 3.0

    def test_missing_values_become_nan(self):
        """Test absent keys are NaN, never zero."""
        matrix = ObservationMatrix.from_observations(self.observations)
        assert matrix.variables == ('A', 'B', 'C')
        assert matrix.n_observations == 3
        assert np.isnan(matrix.column('B')[0])
        assert matrix.observed_count('B') == 2
        assert matrix.observed_count('C') == 0

    def test_matrix_is_read_only(self):
        """Test the shared snapshot cannot be modified."""
        matrix = ObservationMatrix.from_observations(self.observations)
        with pytest.raises(ValueError):
            matrix.values[0, 0] = 99.0
        column = matrix.column('A')
        column[0] = 99.0
        assert matrix.values[0, 0] == 1.0


class TestAlignLagged:
    """Test lag alignment."""

    def test_alignment_rows(self):
        """Test row t holds series_i[t - lag_i]."""
        y = np.arange(10, dtype=np.float64)
        x = np.arange(100, 110, dtype=np.float64)
        aligned = align_lagged([(y, 0), (x, 2)])
        assert aligned.shape == (8, 2)
        assert aligned[0, 0] == 2.0
        assert aligned[0, 1] == 100.0

    def test_rows_with_missing_values_dropped(self):
        """Test incomplete rows are removed."""
        y = np.arange(6, dtype=np.float64)
        x = np.arange(6, dtype=np.float64)
        x[3] = np.nan
        aligned = align_lagged([(y, 0), (x, 0)])
        assert aligned.shape == (5, 2)

    def test_lag_beyond_length(self):
        """Test an impossible lag gives an empty matrix."""
        y = np.arange(3, dtype=np.float64)
        assert align_lagged([(y, 0), (y, 5)]).shape == (0, 2)


class TestRelativeDispersion:
    """Test the squared coefficient of variation used to orient tied pairs."""

    def test_positive_series(self):
        """Test variance over squared mean."""
        assert relative_dispersion(np.array([1.0, 3.0])) == pytest.approx(0.25)

    def test_negative_series(self):
        """Test a strictly negative series is scaled by its mean magnitude."""
        assert relative_dispersion(np.array([-1.0, -3.0, np.nan])) == pytest.approx(0.25)

    def test_undefined_cases(self):
        """Test series that cross zero or hold fewer than two values."""
        assert relative_dispersion(np.array([-1.0, 2.0, 3.0])) is None
        assert relative_dispersion(np.array([0.0, 2.0])) is None
        assert relative_dispersion(np.array([4.0, np.nan])) is None
