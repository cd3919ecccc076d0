"""
Relationship Validation

Scores each retained edge on four criteria in [0, 1]:
- statistical significance: 1 - p
- temporal precedence: strongest |r| at a strictly positive lag
- confounding control: stability of r under partial correlation
- dose response: monotonic response of the effect to the cause
"""

import logging
from typing import Dict, List, Tuple

import numpy as np

from core.config import CausalAnalysisConfig
from core.models import CausalGraph, CausalRelationship, ValidationTest
from numerics.kernels import lagged_correlation_profile, monotonic_increase_fraction, pearson_correlation
from numerics.series import ObservationMatrix, align_lagged
from numerics.significance import partial_correlation

MAX_CONTROL_VARIABLES = 5


class RelationshipValidator:
    """Validation scores of the edges of a causal graph."""

    def __init__(self, config: CausalAnalysisConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)

    def validate(self, graph: CausalGraph, matrix: ObservationMatrix) -> Tuple[ValidationTest, ...]:
        columns = matrix.columns()
        tests = tuple(self.validate_edge(edge, columns, matrix.variables) for edge in graph.edges)
        passed = sum(1 for t in tests if t.passed)
        self.logger.debug(f"{passed} of {len(tests)} relationships passed validation")
        return tests

    def validate_edge(self, edge: CausalRelationship, columns: Dict[str, np.ndarray],
                      variables) -> ValidationTest:
        x = columns[edge.cause]
        y = columns[edge.effect]
        scores = {
            'statistical_significance': float(np.clip(1.0 - edge.p_value, 0.0, 1.0)),
            'temporal_precedence': self._temporal_precedence(x, y),
            'confounding_control': self._confounding_control(edge, columns, variables),
            'dose_response': self._dose_response(edge, x, y)
        }
        score = float(np.mean(list(scores.values())))
        return ValidationTest(
            cause=edge.cause,
            effect=edge.effect,
            scores=scores,
            validation_score=score,
            passed=score > self.config.validation_threshold
        )

    def _temporal_precedence(self, x: np.ndarray, y: np.ndarray) -> float:
        if self.config.max_lag < 1:
            return 0.0
        coefficients, counts = lagged_correlation_profile(x, y, self.config.max_lag)
        best = 0.0
        for lag in range(1, self.config.max_lag + 1):
            if counts[lag] >= self.config.min_sample_size:
                best = max(best, abs(float(coefficients[lag])))
        return best

    def _confounding_control(self, edge: CausalRelationship, columns: Dict[str, np.ndarray],
                             variables) -> float:
        controls = [v for v in sorted(variables) if v not in (edge.cause, edge.effect)]
        differences: List[float] = []
        for control in controls[:MAX_CONTROL_VARIABLES]:
            triples = align_lagged([
                (columns[edge.effect], 0),
                (columns[edge.cause], edge.lag),
                (columns[control], edge.lag)
            ])
            if triples.shape[0] < self.config.min_sample_size:
                continue
            y, x, z = triples[:, 0].copy(), triples[:, 1].copy(), triples[:, 2].copy()
            r_xy = pearson_correlation(x, y)
            partial = partial_correlation(r_xy, pearson_correlation(x, z), pearson_correlation(y, z))
            differences.append(abs(partial - r_xy))

        if not differences:
            return 1.0
        return float(np.clip(1.0 - np.mean(differences), 0.0, 1.0))

    def _dose_response(self, edge: CausalRelationship, x: np.ndarray, y: np.ndarray) -> float:
        pairs = align_lagged([(x, edge.lag), (y, 0)])
        if pairs.shape[0] < 2:
            return 0.5
        fraction = monotonic_increase_fraction(pairs[:, 0].copy(), pairs[:, 1].copy())
        return float(fraction if edge.strength >= 0 else 1.0 - fraction)
