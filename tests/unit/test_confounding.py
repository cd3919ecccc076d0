"""
Unit tests for confounder detection
Tests common-driver detection, downstream exclusion and ranking
"""

import pytest
import numpy as np
import sys
import os
from datetime import datetime, timedelta

# Add the project root to the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../..'))

from core.config import CausalAnalysisConfig
from core.models import Observation
from numerics.series import ObservationMatrix
from reasoning.confounding import ConfounderDetector
from reasoning.discovery import DiscoveryResult, RelationshipDiscoveryEngine
from reasoning.graph import CausalGraphBuilder

from tests.conftest import make_observations


def common_driver_observations(n=120, seed=4):
    """Driver feeds both Left and Right one step later; Noise is independent."""
    rng = np.random.default_rng(seed)
    driver = rng.normal(size=n + 1)
    noise = rng.normal(size=n)
    start = datetime(2025, 1, 1)
    return [
        Observation(start + timedelta(minutes=t), {
            'Driver': float(driver[t + 1]),
            'Left': float(2.0 * driver[t] + rng.normal(scale=0.3)),
            'Right': float(-1.5 * driver[t] + rng.normal(scale=0.3)),
            'Noise': float(noise[t])
        })
        for t in range(n)
    ]


def staggered_driver_observations(n=200, seed=12):
    """Driver leads Early by two steps and Late by one; Early also feeds Late."""
    rng = np.random.default_rng(seed)
    driver = rng.normal(size=n + 2)
    start = datetime(2025, 1, 1)
    observations = []
    for t in range(n):
        early = driver[t] + rng.normal(scale=0.1)
        late = driver[t + 1] + 0.8 * early + rng.normal(scale=0.1)
        observations.append(Observation(start + timedelta(minutes=t), {
            'Driver': float(driver[t + 2]),
            'Early': float(early),
            'Late': float(late)
        }))
    return observations


def run_detection(observations, config=None):
    config = config or CausalAnalysisConfig()
    matrix = ObservationMatrix.from_observations(observations)
    discovery = RelationshipDiscoveryEngine(config).discover(matrix)
    graph = CausalGraphBuilder().build(discovery.relationships, matrix.variables)
    return graph, ConfounderDetector(config).detect(graph, discovery, matrix)


class TestConfounderDetector:
    """Test ConfounderDetector."""

    def test_common_driver_detected(self):
        """Test a shared cause is reported for the induced association."""
        graph, factors = run_detection(common_driver_observations())

        pair = {('Left', 'Right'), ('Right', 'Left')}
        induced = [f for f in factors if (f.confounded_pair_cause, f.confounded_pair_effect) in pair]
        assert induced, "the Left/Right association should carry a confounder"
        driver = [f for f in induced if f.variable == 'Driver']
        assert driver
        assert driver[0].confounding_strength > 0.8
        assert abs(driver[0].partial_correlation) < abs(driver[0].cause_correlation)

    def test_descendants_never_reported(self):
        """Test no factor is downstream of either end of its edge."""
        graph, factors = run_detection(common_driver_observations())
        for factor in factors:
            assert factor.variable not in graph.children(factor.confounded_pair_cause)
            assert factor.variable not in (factor.confounded_pair_cause, factor.confounded_pair_effect)

    def test_synthetic_history(self):
        """Test CodeComplexity explains the ExecutionTime/MemoryUsage association."""
        graph, factors = run_detection(make_observations())
        pair = {('ExecutionTime', 'MemoryUsage'), ('MemoryUsage', 'ExecutionTime')}
        variables = {f.variable for f in factors
                     if (f.confounded_pair_cause, f.confounded_pair_effect) in pair}
        assert 'CodeComplexity' in variables

    def test_ranked_by_strength_within_edge(self):
        """Test ordering inside each edge."""
        _, factors = run_detection(make_observations())
        by_edge = {}
        for factor in factors:
            by_edge.setdefault((factor.confounded_pair_cause, factor.confounded_pair_effect), []).append(
                factor.confounding_strength)
        for strengths in by_edge.values():
            assert strengths == sorted(strengths, reverse=True)

    def test_candidate_cap(self):
        """Test max_confounder_candidates limits factors per edge."""
        config = CausalAnalysisConfig(max_confounder_candidates=1, confounder_correlation_threshold=0.0)
        _, factors = run_detection(make_observations(), config)
        edges = [(f.confounded_pair_cause, f.confounded_pair_effect) for f in factors]
        assert len(edges) == len(set(edges))

    def test_threshold_filters_weak_associations(self):
        """Test a near-one threshold leaves nothing."""
        config = CausalAnalysisConfig(confounder_correlation_threshold=0.999)
        _, factors = run_detection(common_driver_observations(), config)
        assert factors == ()

    def test_driver_leading_by_different_lags(self):
        """Test each association is measured at the driver's own lag toward that end."""
        config = CausalAnalysisConfig()
        matrix = ObservationMatrix.from_observations(staggered_driver_observations())
        columns = matrix.columns()
        engine = RelationshipDiscoveryEngine(config)
        selections = {
            (cause, effect): engine.select_lag(cause, effect, columns[cause], columns[effect])
            for cause, effect in [('Driver', 'Early'), ('Driver', 'Late'), ('Early', 'Late')]
        }
        assert selections[('Driver', 'Early')].lag == 2
        assert selections[('Driver', 'Late')].lag == 1
        assert selections[('Early', 'Late')].lag == 0

        relationships = tuple(s.to_relationship() for s in selections.values())
        discovery = DiscoveryResult(relationships, (), selections, pairs_tested=3)
        graph = CausalGraphBuilder().build(relationships, matrix.variables)
        factors = ConfounderDetector(config).detect(graph, discovery, matrix)

        assert len(factors) == 1
        factor = factors[0]
        assert (factor.variable, factor.confounded_pair_cause, factor.confounded_pair_effect) == \
            ('Driver', 'Early', 'Late')
        assert factor.cause_correlation > 0.95
        assert factor.effect_correlation > 0.6
        assert abs(factor.partial_correlation) < 0.3
        assert factor.sample_size == 198
