"""
Causal Analysis Reasoning
Algorithm families of the causal analysis pipeline

This module contains the reasoning components:
- Relationship Discovery: lagged-correlation pair tests
- Graph Builder: deduplication and cycle breaking
- Structural Equations: per-node least squares fits
- Interventions: linear path decomposition
- Confounders: third-variable search
- Confidence: weighted overall confidence
- Validation: per-edge validation scores
- Temporal: sliding windows and change points
- Comparison: similarity and structural differences
"""

from .discovery import RelationshipDiscoveryEngine, DiscoveryResult
from .graph import CausalGraphBuilder
from .structural import StructuralEquationFitter
from .intervention import InterventionEstimator, InterventionError, estimate_intervention
from .confounding import ConfounderDetector
from .confidence import ConfidenceAggregator
from .validation import RelationshipValidator
from .temporal import TemporalWindowAnalyzer, ChangePointDetector
from .comparison import CausalComparisonEngine, causal_similarity

__all__ = [
    "RelationshipDiscoveryEngine",
    "DiscoveryResult",
    "CausalGraphBuilder",
    "StructuralEquationFitter",
    "InterventionEstimator",
    "InterventionError",
    "estimate_intervention",
    "ConfounderDetector",
    "ConfidenceAggregator",
    "RelationshipValidator",
    "TemporalWindowAnalyzer",
    "ChangePointDetector",
    "CausalComparisonEngine",
    "causal_similarity"
]
