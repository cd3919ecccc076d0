"""
Unit tests for causal analysis configuration
Tests defaults, camelCase aliases, validation and YAML loading
"""

import logging
import pytest
import sys
import os

# Add the project root to the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '../..'))

from core.config import (
    CausalAnalysisConfig, ConfidenceWeights, ConfigurationError, load_config
)
from engine import create_causal_engine


class TestCausalAnalysisConfig:
    """Test CausalAnalysisConfig."""

    def test_defaults(self):
        """Test default option values."""
        config = CausalAnalysisConfig()
        assert config.min_correlation_threshold == 0.3
        assert config.max_lag == 3
        assert config.min_sample_size == 10
        assert config.significance_alpha == 0.05
        assert config.window_size == 50
        assert config.effective_window_stride == 12
        assert config.confidence_weights == ConfidenceWeights()

    def test_camel_case_aliases(self):
        """Test the camelCase option names are accepted."""
        config = CausalAnalysisConfig.from_dict({
            'minCorrelationThreshold': 0.5,
            'maxLag': 2,
            'windowSize': 20,
            'windowStride': 5,
            'orientationDispersionRatio': 3.0,
            'confidenceWeights': {'edgeStrength': 0.5, 'dropPenalty': 0.3}
        })
        assert config.min_correlation_threshold == 0.5
        assert config.max_lag == 2
        assert config.effective_window_stride == 5
        assert config.orientation_dispersion_ratio == 3.0
        assert config.confidence_weights.edge_strength == 0.5
        assert config.confidence_weights.drop_penalty == 0.3
        assert config.confidence_weights.model_fit == 0.25

    def test_unknown_keys_ignored_with_warning(self, caplog):
        """Test unknown options are logged and skipped."""
        with caplog.at_level(logging.WARNING):
            config = CausalAnalysisConfig.from_dict({'maxLag': 1, 'colour': 'blue'})
        assert config.max_lag == 1
        assert "colour" in caplog.text

    @pytest.mark.parametrize("options,message", [
        ({'max_lag': -1}, "max_lag"),
        ({'max_lag': 1.5}, "max_lag"),
        ({'window_size': 0}, "window_size"),
        ({'window_stride': 0}, "window_stride"),
        ({'min_sample_size': 2}, "min_sample_size"),
        ({'min_correlation_threshold': 1.5}, "min_correlation_threshold"),
        ({'significance_alpha': 0.0}, "significance_alpha"),
        ({'change_point_delta_threshold': -0.1}, "change_point_delta_threshold"),
        ({'direction_margin': 1.0}, "direction_margin"),
        ({'orientation_dispersion_ratio': 0.5}, "orientation_dispersion_ratio"),
        ({'max_workers': 0}, "max_workers"),
    ])
    def test_invalid_options_fail_fast(self, options, message):
        """Test descriptive errors for invalid options."""
        with pytest.raises(ConfigurationError, match=message):
            CausalAnalysisConfig.from_dict(options)

    def test_invalid_weights(self):
        """Test negative, unknown or all-zero weights are rejected."""
        with pytest.raises(ConfigurationError):
            CausalAnalysisConfig.from_dict({'confidenceWeights': {'edgeStrength': -1.0}})
        with pytest.raises(ConfigurationError, match="Unknown confidence weight"):
            CausalAnalysisConfig.from_dict({'confidenceWeights': {'novelty': 0.2}})
        with pytest.raises(ConfigurationError):
            CausalAnalysisConfig.from_dict({'confidenceWeights': {
                'edge_strength': 0.0, 'model_fit': 0.0, 'sample_adequacy': 0.0}})

    def test_with_overrides_validates(self):
        """Test overrides produce a new validated config."""
        config = CausalAnalysisConfig()
        assert config.with_overrides(max_lag=1).max_lag == 1
        assert config.max_lag == 3
        with pytest.raises(ConfigurationError):
            config.with_overrides(window_size=-5)


class TestLoadConfig:
    """Test YAML configuration loading."""

    def test_nested_section(self, tmp_path):
        """Test options under a causal_analysis key."""
        path = tmp_path / "causal.yaml"
        path.write_text("causal_analysis:\n  maxLag: 2\n  minSampleSize: 20\n", encoding="utf-8")
        config = load_config(str(path))
        assert config.max_lag == 2
        assert config.min_sample_size == 20

    def test_top_level_options(self, tmp_path):
        """Test options at the top level."""
        path = tmp_path / "causal.yaml"
        path.write_text("window_size: 30\n", encoding="utf-8")
        assert load_config(str(path)).window_size == 30

    def test_missing_file(self, tmp_path):
        """Test a missing file is a configuration error."""
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(str(tmp_path / "absent.yaml"))

    def test_malformed_yaml(self, tmp_path):
        """Test a parse failure is a configuration error."""
        path = tmp_path / "broken.yaml"
        path.write_text("maxLag: [1, 2\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="parse"):
            load_config(str(path))

    def test_non_mapping(self, tmp_path):
        """Test a YAML list is rejected."""
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(str(path))

    def test_shipped_configuration(self):
        """Test the bundled configuration file loads."""
        path = os.path.join(os.path.dirname(__file__), '../../config/causal_analysis.yaml')
        engine = create_causal_engine(path)
        assert engine.config.max_lag == 3
        assert engine.config.window_stride == 12

    def test_engine_without_config(self):
        """Test the default engine."""
        assert create_causal_engine().config == CausalAnalysisConfig()
