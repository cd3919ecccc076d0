"""
Causal Analysis Engine
Public call contract of the causal analysis pipeline

Observations flow through discovery, graph building, structural
fitting, confounder detection, validation and confidence aggregation.
Temporal analysis and dataset comparison reuse the same pipeline.
"""

import logging
import threading
import time
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

import numpy as np

from core.cancellation import CancellationToken
from core.config import CausalAnalysisConfig, ConfigurationError, load_config
from core.models import (
    AnalysisStatus,
    CausalAnalysisResult,
    CausalComparisonResult,
    InterventionEffect,
    Observation,
    TemporalCausalResult,
    VariableSummary
)
from numerics.series import ObservationMatrix, sort_observations
from reasoning.comparison import CausalComparisonEngine
from reasoning.confidence import ConfidenceAggregator
from reasoning.confounding import ConfounderDetector
from reasoning.discovery import RelationshipDiscoveryEngine
from reasoning.graph import CausalGraphBuilder
from reasoning.intervention import InterventionEstimator, estimate_intervention
from reasoning.structural import StructuralEquationFitter, model_fit_statistics
from reasoning.temporal import ChangePointDetector, TemporalWindowAnalyzer
from reasoning.validation import RelationshipValidator

ConfigLike = Union[CausalAnalysisConfig, Dict[str, Any], None]


def variable_summaries(matrix: ObservationMatrix) -> List[VariableSummary]:
    """Descriptive statistics of every observed variable."""
    summaries = []
    for name in matrix.variables:
        column = matrix.column(name)
        observed = column[np.isfinite(column)]
        if observed.size == 0:
            summaries.append(VariableSummary(name, 0, float('nan'), float('nan'),
                                             float('nan'), float('nan')))
            continue
        summaries.append(VariableSummary(
            name=name,
            count=int(observed.size),
            mean=float(observed.mean()),
            std=float(observed.std()),
            minimum=float(observed.min()),
            maximum=float(observed.max())
        ))
    return summaries


class CausalAnalysisEngine:
    """Runs causal analyses over historical measurement records."""

    def __init__(self, config: Optional[CausalAnalysisConfig] = None):
        self.config = config or CausalAnalysisConfig()
        self.config.validate()
        self.logger = logging.getLogger(__name__)

        self._stats_lock = threading.Lock()
        self.analysis_count = 0
        self.temporal_analysis_count = 0
        self.comparison_count = 0
        self.cancelled_count = 0
        self.analysis_times: List[float] = []

    def analyze_causal_relationships(self, observations: Iterable[Observation],
                                     config: ConfigLike = None,
                                     cancellation_token: Optional[CancellationToken] = None
                                     ) -> CausalAnalysisResult:
        """Discover, fit and score the causal structure of one dataset."""
        config = self._resolve_config(config)
        start_time = time.time()

        result = self._run_analysis(list(observations), config, config.max_workers, cancellation_token)

        self._record('analysis_count', result.status, time.time() - start_time)
        return result

    def analyze_temporal_causal_relationships(self, observations: Iterable[Observation],
                                              config: ConfigLike = None,
                                              cancellation_token: Optional[CancellationToken] = None
                                              ) -> TemporalCausalResult:
        """Repeat the analysis over sliding windows and track structural change."""
        config = self._resolve_config(config)
        start_time = time.time()
        observations = list(observations)
        ordered = sort_observations(observations)

        self.logger.info(
            f"Starting temporal causal analysis: {len(ordered)} observations, "
            f"window {config.window_size}, stride {config.effective_window_stride}")

        analyzer = TemporalWindowAnalyzer(config)
        windows, cancelled = analyzer.analyze(
            ordered,
            lambda window, token: self._run_analysis(window, config, 1, token),
            cancellation_token
        )
        change_points = ChangePointDetector(config).detect(windows)
        status = AnalysisStatus.CANCELLED if cancelled else AnalysisStatus.COMPLETED

        result = TemporalCausalResult(
            analysis_timestamp=datetime.now(),
            data_sample_count=len(observations),
            status=status,
            windows=windows,
            stability_metrics=analyzer.stability_metrics(windows),
            change_points=change_points,
            window_stability=analyzer.window_stability_summary(windows)
        )

        self.logger.info(
            f"Temporal analysis produced {len(windows)} windows and {len(change_points)} change points")
        self._record('temporal_analysis_count', status, time.time() - start_time)
        return result

    def compare_causal_relationships(self, baseline: Iterable[Observation],
                                     comparison: Iterable[Observation],
                                     config: ConfigLike = None,
                                     cancellation_token: Optional[CancellationToken] = None
                                     ) -> CausalComparisonResult:
        """Run the full analysis on both datasets and report their differences."""
        config = self._resolve_config(config)
        start_time = time.time()

        baseline_analysis = self._run_analysis(list(baseline), config, config.max_workers, cancellation_token)
        comparison_analysis = self._run_analysis(list(comparison), config, config.max_workers, cancellation_token)

        similarity, differences, evolution = CausalComparisonEngine(config).compare(
            baseline_analysis, comparison_analysis)
        status = (AnalysisStatus.COMPLETED
                  if baseline_analysis.is_complete and comparison_analysis.is_complete
                  else AnalysisStatus.CANCELLED)

        self._record('comparison_count', status, time.time() - start_time)
        return CausalComparisonResult(
            baseline_analysis=baseline_analysis,
            comparison_analysis=comparison_analysis,
            causal_similarity=similarity,
            significant_differences=differences,
            causal_evolution=evolution,
            status=status
        )

    def estimate_intervention(self, result: CausalAnalysisResult, source: str, target: str,
                              delta: Optional[float] = None,
                              value: Optional[float] = None) -> InterventionEffect:
        """Effect on target of moving source by delta, or to an absolute value."""
        return estimate_intervention(result, source, target, delta=delta, value=value)

    def get_performance_stats(self) -> Dict[str, Any]:
        """Get performance statistics."""
        with self._stats_lock:
            stats = {
                'analyses_run': self.analysis_count,
                'temporal_analyses_run': self.temporal_analysis_count,
                'comparisons_run': self.comparison_count,
                'cancelled_calls': self.cancelled_count,
                'total_analysis_time': float(sum(self.analysis_times))
            }
            if self.analysis_times:
                stats.update({
                    'avg_analysis_time': float(np.mean(self.analysis_times)),
                    'max_analysis_time': float(np.max(self.analysis_times))
                })
        return stats

    def _run_analysis(self, observations: Sequence[Observation], config: CausalAnalysisConfig,
                      max_workers: int, cancellation_token=None) -> CausalAnalysisResult:
        matrix = ObservationMatrix.from_observations(observations)
        summaries = variable_summaries(matrix)
        self.logger.info(
            f"Analyzing {matrix.n_observations} observations of {len(matrix.variables)} variables")

        discovery = RelationshipDiscoveryEngine(config).discover(matrix, max_workers, cancellation_token)
        for skipped in discovery.insufficient_data:
            self.logger.warning(f"Insufficient data for {skipped.cause} / {skipped.effect}: {skipped.detail}")

        if discovery.cancelled:
            self.logger.warning("Analysis cancelled during relationship discovery")
            return CausalAnalysisResult(
                analysis_timestamp=datetime.now(),
                data_sample_count=len(observations),
                status=AnalysisStatus.CANCELLED,
                overall_confidence=0.0,
                variables=matrix.variables,
                relationships=discovery.relationships,
                skipped_relationships=discovery.skipped,
                variable_summaries=tuple(summaries)
            )

        graph = CausalGraphBuilder().build(discovery.relationships, matrix.variables)
        self.logger.info(
            f"Discovered {len(discovery.relationships)} relationships, "
            f"{graph.edge_count} retained in the causal graph")

        equations, failures = StructuralEquationFitter(config).fit_all(graph, matrix)
        interventions = InterventionEstimator(graph, equations).unit_effects()
        confounders = ConfounderDetector(config).detect(graph, discovery, matrix)
        validation = RelationshipValidator(config).validate(graph, matrix)
        confidence = ConfidenceAggregator(config).aggregate(
            graph, equations, discovery.insufficient_data, matrix.n_observations)

        self.logger.info(
            f"Fit {len(equations)} structural equations ({len(failures)} failed), "
            f"{len(confounders)} confounding factors, confidence {confidence.overall:.3f}")

        return CausalAnalysisResult(
            analysis_timestamp=datetime.now(),
            data_sample_count=len(observations),
            status=AnalysisStatus.COMPLETED,
            overall_confidence=confidence.overall,
            variables=matrix.variables,
            relationships=graph.edges,
            graph=graph,
            structural_equations=equations,
            fit_failures=failures,
            model_fit_statistics=model_fit_statistics(equations, failures),
            intervention_effects=interventions,
            confounding_factors=confounders,
            skipped_relationships=discovery.skipped,
            validation=validation,
            variable_summaries=tuple(summaries),
            confidence=confidence
        )

    def _resolve_config(self, config: ConfigLike) -> CausalAnalysisConfig:
        if config is None:
            return self.config
        if isinstance(config, dict):
            return CausalAnalysisConfig.from_dict(config)
        if isinstance(config, CausalAnalysisConfig):
            config.validate()
            return config
        raise ConfigurationError(f"Unsupported configuration type: {type(config).__name__}")

    def _record(self, counter: str, status: AnalysisStatus, elapsed: float) -> None:
        with self._stats_lock:
            setattr(self, counter, getattr(self, counter) + 1)
            if status == AnalysisStatus.CANCELLED:
                self.cancelled_count += 1
            self.analysis_times.append(elapsed)


def create_causal_engine(config_path: Optional[str] = None) -> CausalAnalysisEngine:
    """
    Create a CausalAnalysisEngine with optional configuration.

    Args:
        config_path: Path to a YAML configuration file

    Returns:
        CausalAnalysisEngine instance
    """
    config = load_config(config_path) if config_path else CausalAnalysisConfig()
    return CausalAnalysisEngine(config)


def analyze_causal_relationships(observations: Iterable[Observation], config: ConfigLike = None,
                                 cancellation_token: Optional[CancellationToken] = None
                                 ) -> CausalAnalysisResult:
    return CausalAnalysisEngine().analyze_causal_relationships(observations, config, cancellation_token)


def analyze_temporal_causal_relationships(observations: Iterable[Observation], config: ConfigLike = None,
                                          cancellation_token: Optional[CancellationToken] = None
                                          ) -> TemporalCausalResult:
    return CausalAnalysisEngine().analyze_temporal_causal_relationships(
        observations, config, cancellation_token)


def compare_causal_relationships(baseline: Iterable[Observation], comparison: Iterable[Observation],
                                 config: ConfigLike = None,
                                 cancellation_token: Optional[CancellationToken] = None
                                 ) -> CausalComparisonResult:
    return CausalAnalysisEngine().compare_causal_relationships(
        baseline, comparison, config, cancellation_token)
