"""
ALARM Causal Analysis Engine
Causal structure of operational measurement histories

This module contains the public entry points:
- CausalAnalysisEngine: analysis, temporal analysis, comparison and
  intervention queries
- create_causal_engine: engine factory with optional YAML configuration
- Module-level analyze/compare functions using default engines
"""

__version__ = "1.0.0"
__author__ = "ALARM Development Team"

from core.cancellation import CancellationToken
from core.config import CausalAnalysisConfig, CausalAnalysisError, ConfigurationError, load_config
from core.models import Observation
from reasoning.intervention import InterventionError
from .pipeline import (
    CausalAnalysisEngine,
    analyze_causal_relationships,
    analyze_temporal_causal_relationships,
    compare_causal_relationships,
    create_causal_engine
)

__all__ = [
    "CausalAnalysisEngine",
    "CausalAnalysisConfig",
    "CausalAnalysisError",
    "CancellationToken",
    "ConfigurationError",
    "InterventionError",
    "Observation",
    "analyze_causal_relationships",
    "analyze_temporal_causal_relationships",
    "compare_causal_relationships",
    "create_causal_engine",
    "load_config"
]
