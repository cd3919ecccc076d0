"""
Intervention Estimation

Linear path decomposition over the causal graph: the effect of moving
a source variable by delta on a target is delta times the sum, over
every directed path, of the product of the structural coefficients
along the path. Paths through a node without a fitted equation are
excluded.
The per-unit effects stored with an analysis accumulate the same sums
in topological order.
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

import networkx as nx

from core.config import CausalAnalysisError
from core.models import (
    NO_CAUSAL_PATH, NO_FITTED_PATH, CausalAnalysisResult, CausalGraph, InterventionEffect, StructuralEquation
)
from .graph import to_networkx


class InterventionError(CausalAnalysisError):
    """Raised when an intervention query cannot be answered."""
    pass


class InterventionEstimator:
    """Propagates hypothetical changes through fitted structural equations."""

    def __init__(self, graph: CausalGraph, equations: Sequence[StructuralEquation]):
        self.graph = graph
        self.equations: Dict[str, StructuralEquation] = {e.target: e for e in equations}
        self._digraph = to_networkx(graph)
        self.logger = logging.getLogger(__name__)

    def estimate(self, source: str, target: str, delta: float = 1.0) -> InterventionEffect:
        """Effect on target of do(source := source + delta)."""
        for variable in (source, target):
            if variable not in self._digraph:
                raise InterventionError(f"Variable '{variable}' is not in the causal graph")
        if source == target:
            raise InterventionError("Intervened and target variable must differ")

        all_paths = sorted(tuple(p) for p in nx.all_simple_paths(self._digraph, source, target))
        if not all_paths:
            return InterventionEffect(
                intervened_variable=source,
                target_variable=target,
                delta=delta,
                estimated_effect=0.0,
                annotation=NO_CAUSAL_PATH
            )

        paths: List[Tuple[str, ...]] = []
        path_effects: List[float] = []
        for path in all_paths:
            product = self._path_product(path)
            if product is None:
                continue
            paths.append(path)
            path_effects.append(delta * product)

        annotation = "" if paths else NO_FITTED_PATH
        return InterventionEffect(
            intervened_variable=source,
            target_variable=target,
            delta=delta,
            estimated_effect=float(sum(path_effects)),
            paths=tuple(paths),
            path_effects=tuple(path_effects),
            annotation=annotation
        )

    def unit_effects(self) -> Tuple[InterventionEffect, ...]:
        """
        Per-unit total effects for every ordered pair joined by a directed path.

        Totals are accumulated in topological order rather than by path
        enumeration; path breakdowns are left to estimate().
        """
        order = list(nx.lexicographical_topological_sort(self._digraph))
        effects = []
        for source in sorted(self._digraph.nodes):
            totals = self._propagate(source, order)
            for target in sorted(nx.descendants(self._digraph, source)):
                reached = target in totals
                effects.append(InterventionEffect(
                    intervened_variable=source,
                    target_variable=target,
                    delta=1.0,
                    estimated_effect=float(totals.get(target, 0.0)),
                    annotation="" if reached else NO_FITTED_PATH
                ))
        self.logger.debug(f"Computed {len(effects)} unit intervention effects")
        return tuple(effects)

    def _propagate(self, source: str, order: Sequence[str]) -> Dict[str, float]:
        """Total unit effect of source on every node reached through fitted equations."""
        totals = {source: 1.0}
        for node in order[order.index(source) + 1:]:
            equation = self.equations.get(node)
            if equation is None:
                continue
            incoming = [totals[p] * equation.coefficients[p]
                        for p in self._digraph.predecessors(node)
                        if p in totals and p in equation.coefficients]
            if incoming:
                totals[node] = sum(incoming)
        return totals

    def _path_product(self, path: Sequence[str]) -> Optional[float]:
        product = 1.0
        for cause, effect in zip(path, path[1:]):
            equation = self.equations.get(effect)
            if equation is None or cause not in equation.coefficients:
                return None
            product *= equation.coefficients[cause]
        return product


def estimate_intervention(result: CausalAnalysisResult, source: str, target: str,
                          delta: Optional[float] = None,
                          value: Optional[float] = None) -> InterventionEffect:
    """
    Answer an intervention query against a finished analysis.

    Pass either delta (change in source units) or value (new absolute
    level, converted to a delta against the observed mean). With
    neither, a unit change is assumed.
    """
    if delta is not None and value is not None:
        raise InterventionError("Pass either delta or value, not both")

    if value is not None:
        summary = result.summary_for(source)
        if summary is None or summary.count == 0:
            raise InterventionError(f"No observations of '{source}' to convert a value into a delta")
        delta = float(value) - summary.mean
    elif delta is None:
        delta = 1.0

    estimator = InterventionEstimator(result.graph, result.structural_equations)
    return estimator.estimate(source, target, float(delta))
