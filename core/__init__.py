"""
Causal Analysis Core
Shared building blocks of the causal analysis engine

This module contains:
- Config: analysis options, confidence weights and the YAML loader
- Models: observations and the immutable result records
- Cancellation: cooperative cancellation token
- Serialization: plain-dict / JSON export of records
"""

from .config import (
    CausalAnalysisConfig,
    CausalAnalysisError,
    ConfidenceWeights,
    ConfigurationError,
    load_config
)
from .cancellation import CancellationToken
from .models import (
    AnalysisStatus,
    CausalAnalysisResult,
    CausalComparisonResult,
    CausalGraph,
    CausalRelationship,
    Observation,
    TemporalCausalResult
)

__all__ = [
    "CausalAnalysisConfig",
    "CausalAnalysisError",
    "ConfidenceWeights",
    "ConfigurationError",
    "load_config",
    "CancellationToken",
    "AnalysisStatus",
    "CausalAnalysisResult",
    "CausalComparisonResult",
    "CausalGraph",
    "CausalRelationship",
    "Observation",
    "TemporalCausalResult"
]
