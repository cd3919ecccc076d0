"""
Causal Structure Comparison

Similarity and structured differences between the graphs of two
completed analyses.
"""

import logging
from typing import Tuple

from core.config import CausalAnalysisConfig
from core.models import CausalAnalysisResult, CausalEvolution, CausalGraph, ChangeKind, EdgeChange
from .graph import edge_changes


def causal_similarity(a: CausalGraph, b: CausalGraph) -> float:
    """
    Strength-weighted overlap of two edge sets in [0, 1].

    Each shared edge earns 1 - |s_a - s_b| / 2, edges present in only
    one graph earn nothing; the total is divided by the union size.
    """
    strengths_a = {e.key: e.strength for e in a.edges}
    strengths_b = {e.key: e.strength for e in b.edges}
    union = set(strengths_a) | set(strengths_b)
    if not union:
        return 1.0

    credit = 0.0
    for key in sorted(set(strengths_a) & set(strengths_b)):
        credit += 1.0 - abs(strengths_a[key] - strengths_b[key]) / 2.0
    return min(1.0, max(0.0, credit / len(union)))


class CausalComparisonEngine:
    """Reports structural differences between a baseline and a comparison analysis."""

    def __init__(self, config: CausalAnalysisConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)

    def compare(self, baseline: CausalAnalysisResult, comparison: CausalAnalysisResult
                ) -> Tuple[float, Tuple[EdgeChange, ...], CausalEvolution]:
        """Return (similarity, significant differences, evolution)."""
        similarity = causal_similarity(baseline.graph, comparison.graph)
        all_changes = edge_changes(baseline.graph, comparison.graph,
                                   self.config.significant_difference_threshold,
                                   include_unchanged=True)

        differences = tuple(sorted(
            (c for c in all_changes if c.kind != ChangeKind.UNCHANGED),
            key=lambda c: (-abs(c.delta), c.cause, c.effect)
        ))

        baseline_vars = set(baseline.variables)
        comparison_vars = set(comparison.variables)
        evolution = CausalEvolution(
            similarity=similarity,
            relationship_count_before=baseline.graph.edge_count,
            relationship_count_after=comparison.graph.edge_count,
            confidence_before=baseline.overall_confidence,
            confidence_after=comparison.overall_confidence,
            variables_added=tuple(sorted(comparison_vars - baseline_vars)),
            variables_removed=tuple(sorted(baseline_vars - comparison_vars)),
            changes=all_changes
        )

        self.logger.info(
            f"Causal similarity {similarity:.3f} with {len(differences)} significant differences")
        return similarity, differences, evolution
