"""
Causal Analysis Configuration

Tunable options for discovery, fitting, confounder search, temporal
windowing and confidence aggregation, plus the YAML loader.
"""

import logging
import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)


class CausalAnalysisError(Exception):
    """Base class for causal analysis failures."""
    pass


class ConfigurationError(CausalAnalysisError):
    """Raised when a configuration cannot be used to start an analysis."""
    pass


@dataclass(frozen=True)
class ConfidenceWeights:
    """Weights of the overall confidence score."""
    edge_strength: float = 0.35
    model_fit: float = 0.25
    sample_adequacy: float = 0.25
    drop_penalty: float = 0.15

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ConfidenceWeights':
        known = {f.name for f in fields(cls)}
        aliases = {
            'edgeStrength': 'edge_strength',
            'modelFit': 'model_fit',
            'sampleAdequacy': 'sample_adequacy',
            'dropPenalty': 'drop_penalty'
        }
        values = {}
        for key, value in data.items():
            name = aliases.get(key, key)
            if name not in known:
                raise ConfigurationError(f"Unknown confidence weight '{key}'")
            try:
                values[name] = float(value)
            except (TypeError, ValueError) as e:
                raise ConfigurationError(f"Confidence weight '{key}' must be numeric") from e
        return cls(**values)


# camelCase option names accepted alongside the field names
_OPTION_ALIASES = {
    'minCorrelationThreshold': 'min_correlation_threshold',
    'maxLag': 'max_lag',
    'minSampleSize': 'min_sample_size',
    'significanceAlpha': 'significance_alpha',
    'confounderCorrelationThreshold': 'confounder_correlation_threshold',
    'windowSize': 'window_size',
    'windowStride': 'window_stride',
    'changePointDeltaThreshold': 'change_point_delta_threshold',
    'confidenceWeights': 'confidence_weights',
    'directionMargin': 'direction_margin',
    'orientationDispersionRatio': 'orientation_dispersion_ratio',
    'significantDifferenceThreshold': 'significant_difference_threshold',
    'targetSampleSize': 'target_sample_size',
    'validationThreshold': 'validation_threshold',
    'maxConfounderCandidates': 'max_confounder_candidates',
    'maxWorkers': 'max_workers',
}


@dataclass(frozen=True)
class CausalAnalysisConfig:
    """Configuration for a causal analysis call."""
    # Discovery
    min_correlation_threshold: float = 0.3
    max_lag: int = 3
    min_sample_size: int = 10
    significance_alpha: float = 0.05
    direction_margin: float = 0.2
    orientation_dispersion_ratio: float = 2.0

    # Confounders
    confounder_correlation_threshold: float = 0.4
    max_confounder_candidates: Optional[int] = None

    # Temporal analysis
    window_size: int = 50
    window_stride: Optional[int] = None
    change_point_delta_threshold: float = 0.3

    # Comparison
    significant_difference_threshold: float = 0.2

    # Confidence and validation
    confidence_weights: ConfidenceWeights = field(default_factory=ConfidenceWeights)
    target_sample_size: int = 100
    validation_threshold: float = 0.6

    # Execution
    max_workers: int = 4

    @property
    def effective_window_stride(self) -> int:
        if self.window_stride is None:
            return max(1, self.window_size // 4)
        return self.window_stride

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'CausalAnalysisConfig':
        """Build a validated config from snake_case or camelCase options."""
        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in (data or {}).items():
            name = _OPTION_ALIASES.get(key, key)
            if name not in known:
                logger.warning(f"Ignoring unknown configuration option '{key}'")
                continue
            if name == 'confidence_weights' and isinstance(value, dict):
                value = ConfidenceWeights.from_dict(value)
            values[name] = value

        try:
            config = cls(**values)
        except TypeError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e
        config.validate()
        return config

    def with_overrides(self, **changes: Any) -> 'CausalAnalysisConfig':
        config = replace(self, **changes)
        config.validate()
        return config

    def validate(self) -> None:
        """Raise ConfigurationError describing the first invalid option."""
        if isinstance(self.max_lag, bool) or not isinstance(self.max_lag, int) or self.max_lag < 0:
            raise ConfigurationError(f"max_lag must be a non-negative integer, got {self.max_lag!r}")
        if isinstance(self.min_sample_size, bool) or not isinstance(self.min_sample_size, int) \
                or self.min_sample_size < 3:
            raise ConfigurationError(
                f"min_sample_size must be an integer >= 3, got {self.min_sample_size!r}")

        for name in ('min_correlation_threshold', 'confounder_correlation_threshold',
                     'validation_threshold'):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must lie in [0, 1], got {value!r}")

        if not isinstance(self.significance_alpha, (int, float)) or not 0.0 < self.significance_alpha <= 1.0:
            raise ConfigurationError(
                f"significance_alpha must lie in (0, 1], got {self.significance_alpha!r}")
        if not isinstance(self.direction_margin, (int, float)) or not 0.0 <= self.direction_margin < 1.0:
            raise ConfigurationError(
                f"direction_margin must lie in [0, 1), got {self.direction_margin!r}")
        if not isinstance(self.orientation_dispersion_ratio, (int, float)) \
                or self.orientation_dispersion_ratio < 1.0:
            raise ConfigurationError(
                f"orientation_dispersion_ratio must be >= 1, got {self.orientation_dispersion_ratio!r}")

        if isinstance(self.window_size, bool) or not isinstance(self.window_size, int) or self.window_size <= 0:
            raise ConfigurationError(f"window_size must be a positive integer, got {self.window_size!r}")
        if self.window_stride is not None and (
                isinstance(self.window_stride, bool) or not isinstance(self.window_stride, int)
                or self.window_stride <= 0):
            raise ConfigurationError(
                f"window_stride must be a positive integer, got {self.window_stride!r}")

        for name in ('change_point_delta_threshold', 'significant_difference_threshold'):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or value < 0.0:
                raise ConfigurationError(f"{name} must be non-negative, got {value!r}")

        if self.max_confounder_candidates is not None and self.max_confounder_candidates < 1:
            raise ConfigurationError(
                f"max_confounder_candidates must be >= 1, got {self.max_confounder_candidates!r}")
        if not isinstance(self.max_workers, int) or self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be >= 1, got {self.max_workers!r}")
        if not isinstance(self.target_sample_size, int) or self.target_sample_size < 1:
            raise ConfigurationError(
                f"target_sample_size must be >= 1, got {self.target_sample_size!r}")

        weights = self.confidence_weights
        if not isinstance(weights, ConfidenceWeights):
            raise ConfigurationError("confidence_weights must be a ConfidenceWeights instance or mapping")
        for f in fields(weights):
            if getattr(weights, f.name) < 0.0:
                raise ConfigurationError(f"confidence weight '{f.name}' must be non-negative")
        if weights.edge_strength + weights.model_fit + weights.sample_adequacy <= 0.0:
            raise ConfigurationError("At least one positive confidence weight must be non-zero")


def load_config(config_path: str) -> CausalAnalysisConfig:
    """
    Load a configuration from a YAML file.

    Options may sit at the top level or under a ``causal_analysis`` key.
    """
    if not os.path.exists(config_path):
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse configuration {config_path}: {e}") from e

    if not isinstance(config_data, dict):
        raise ConfigurationError(f"Configuration {config_path} must contain a mapping")

    if 'causal_analysis' in config_data:
        config_data = config_data['causal_analysis'] or {}

    logger.info(f"Loaded causal analysis configuration from {config_path}")
    return CausalAnalysisConfig.from_dict(config_data)
