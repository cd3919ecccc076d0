"""
Confidence Aggregation

overall = clip(w_s * strength + w_f * fit + w_a * adequacy
               (normalized by w_s + w_f + w_a) - w_p * drop_fraction, 0, 1)
"""

import logging
from typing import Sequence

import numpy as np

from core.config import CausalAnalysisConfig
from core.models import CausalGraph, ConfidenceBreakdown, SkippedRelationship, StructuralEquation


class ConfidenceAggregator:
    """Combines signal quality into one overall confidence score."""

    def __init__(self, config: CausalAnalysisConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)

    def aggregate(self, graph: CausalGraph, equations: Sequence[StructuralEquation],
                  insufficient: Sequence[SkippedRelationship],
                  n_observations: int) -> ConfidenceBreakdown:
        weights = self.config.confidence_weights

        if graph.edges:
            edge_strength = float(np.mean([abs(e.strength) for e in graph.edges]))
            typical_samples = float(np.mean([e.sample_size for e in graph.edges]))
        else:
            edge_strength = 0.0
            typical_samples = float(n_observations)

        model_fit = float(np.mean([e.r_squared for e in equations])) if equations else 0.0
        adequacy = min(1.0, typical_samples / self.config.target_sample_size)

        dropped = len(insufficient) + len(graph.removed_edges)
        total = dropped + graph.edge_count
        drop_fraction = dropped / total if total > 0 else 0.0

        positive_weight = weights.edge_strength + weights.model_fit + weights.sample_adequacy
        positive = (weights.edge_strength * edge_strength +
                    weights.model_fit * model_fit +
                    weights.sample_adequacy * adequacy) / positive_weight
        overall = float(np.clip(positive - weights.drop_penalty * drop_fraction, 0.0, 1.0))

        self.logger.debug(
            f"Confidence components: strength={edge_strength:.3f}, fit={model_fit:.3f}, "
            f"adequacy={adequacy:.3f}, dropped={drop_fraction:.3f}")
        return ConfidenceBreakdown(
            edge_strength=edge_strength,
            model_fit=model_fit,
            sample_adequacy=adequacy,
            drop_fraction=drop_fraction,
            overall=overall
        )
