"""
Temporal Causal Analysis
Sliding-window stability and change-point detection

This module implements:
- Window slicing of the time-ordered observations (overlap supported)
- Per-window analysis on a thread pool
- Edge stability metrics across windows
- Change points between consecutive windows
"""

import logging
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from core.cancellation import is_cancelled
from core.config import CausalAnalysisConfig
from core.models import (
    CausalAnalysisResult,
    CausalChangePoint,
    CausalStabilityMetric,
    ChangeKind,
    TimeWindow
)
from .graph import edge_changes

# (observations, cancellation_token) -> CausalAnalysisResult
WindowAnalysis = Callable[[Sequence[Any], Any], CausalAnalysisResult]


def window_bounds(n_observations: int, size: int, stride: int) -> List[Tuple[int, int]]:
    """[start, end) index pairs of every full window."""
    bounds = []
    start = 0
    while start + size <= n_observations:
        bounds.append((start, start + size))
        start += stride
    return bounds


def jaccard_similarity(a: set, b: set) -> float:
    if not a and not b:
        return 1.0
    return len(a & b) / len(a | b)


class TemporalWindowAnalyzer:
    """Repeats the analysis over sliding windows and summarizes stability."""

    def __init__(self, config: CausalAnalysisConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)

    def analyze(self, observations: Sequence[Any], analyze_window: WindowAnalysis,
                cancellation_token=None) -> Tuple[Tuple[TimeWindow, ...], bool]:
        """
        Analyze every window of the time-ordered observations.

        Returns (windows, cancelled). Windows skipped because of a
        cancellation are absent from the tuple.
        """
        bounds = window_bounds(len(observations), self.config.window_size,
                               self.config.effective_window_stride)
        if not bounds:
            self.logger.warning(
                f"{len(observations)} observations are fewer than one window of "
                f"{self.config.window_size}")
            return (), False

        def run(index: int) -> Optional[Tuple[int, CausalAnalysisResult]]:
            if is_cancelled(cancellation_token):
                return None
            start, end = bounds[index]
            self.logger.debug(f"Analyzing window {index} [{start}, {end})")
            return index, analyze_window(observations[start:end], cancellation_token)

        indices = range(len(bounds))
        if self.config.max_workers > 1 and len(bounds) > 1:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
                outcomes = list(executor.map(run, indices))
        else:
            outcomes = [run(index) for index in indices]

        completed = [outcome for outcome in outcomes if outcome is not None]
        cancelled = len(completed) < len(bounds) or any(
            not analysis.is_complete for _, analysis in completed)

        windows = []
        previous_keys = None
        for index, analysis in completed:
            start, end = bounds[index]
            keys = set(analysis.graph.edge_keys())
            stability = 1.0 if previous_keys is None else jaccard_similarity(previous_keys, keys)
            previous_keys = keys
            windows.append(TimeWindow(
                index=index,
                start_index=start,
                end_index=end,
                start_time=observations[start].timestamp,
                end_time=observations[end - 1].timestamp,
                analysis=analysis,
                stability_score=stability
            ))

        if cancelled:
            self.logger.warning(f"Temporal analysis cancelled after {len(windows)} of {len(bounds)} windows")
        return tuple(windows), cancelled

    def stability_metrics(self, windows: Sequence[TimeWindow]) -> Tuple[CausalStabilityMetric, ...]:
        """Appearance fraction and strength variance of every edge seen in any window."""
        strengths: Dict[Tuple[str, str], List[float]] = defaultdict(list)
        for window in windows:
            for edge in window.analysis.graph.edges:
                strengths[edge.key].append(edge.strength)

        window_count = len(windows)
        metrics = []
        for (cause, effect), values in sorted(strengths.items()):
            metrics.append(CausalStabilityMetric(
                cause=cause,
                effect=effect,
                appearance_count=len(values),
                window_count=window_count,
                appearance_fraction=len(values) / window_count,
                mean_strength=float(np.mean(values)),
                strength_variance=float(np.var(values))
            ))
        return tuple(metrics)

    @staticmethod
    def window_stability_summary(windows: Sequence[TimeWindow]) -> Dict[str, float]:
        if not windows:
            return {}
        scores = np.array([w.stability_score for w in windows])
        return {
            'average_stability': float(scores.mean()),
            'stability_variance': float(scores.var()),
            'min_stability': float(scores.min()),
            'max_stability': float(scores.max())
        }


class ChangePointDetector:
    """Flags window boundaries where the causal structure shifts."""

    def __init__(self, config: CausalAnalysisConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)

    def detect(self, windows: Sequence[TimeWindow]) -> Tuple[CausalChangePoint, ...]:
        change_points = []
        for previous, current in zip(windows, windows[1:]):
            changes = edge_changes(previous.analysis.graph, current.analysis.graph,
                                   self.config.change_point_delta_threshold)
            if not changes:
                continue

            magnitude = sum(abs(c.delta) for c in changes)
            change_points.append(CausalChangePoint(
                timestamp=current.start_time,
                window_index=current.index,
                changes=changes,
                magnitude=float(magnitude)
            ))
            added = sum(1 for c in changes if c.kind == ChangeKind.ADDED)
            removed = sum(1 for c in changes if c.kind == ChangeKind.REMOVED)
            self.logger.debug(
                f"Change point at window {current.index}: {added} added, {removed} removed, "
                f"magnitude {magnitude:.3f}")

        return tuple(change_points)
