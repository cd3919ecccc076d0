"""
Confounder Detection

For every retained edge X -> Y, searches the remaining variables for a
Z associated with both ends that is not plausibly downstream of either.
"""

import logging
from typing import List, Optional, Tuple

import networkx as nx

from core.config import CausalAnalysisConfig
from core.models import CausalGraph, CausalRelationship, ConfoundingFactor
from numerics.kernels import pearson_correlation
from numerics.series import ObservationMatrix, align_lagged
from numerics.significance import partial_correlation
from .discovery import DiscoveryResult
from .graph import to_networkx


class ConfounderDetector:
    """Searches third variables that explain an observed association."""

    def __init__(self, config: CausalAnalysisConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)

    def detect(self, graph: CausalGraph, discovery: DiscoveryResult,
               matrix: ObservationMatrix) -> Tuple[ConfoundingFactor, ...]:
        """Confounders of every edge, ranked by strength within each edge."""
        digraph = to_networkx(graph)
        columns = matrix.columns()
        factors: List[ConfoundingFactor] = []

        for edge in graph.edges:
            found = []
            downstream = nx.descendants(digraph, edge.cause) | nx.descendants(digraph, edge.effect)
            for candidate in graph.nodes:
                if candidate in (edge.cause, edge.effect) or candidate in downstream:
                    continue
                if discovery.is_directed(edge.cause, candidate) or discovery.is_directed(edge.effect, candidate):
                    continue
                factor = self._score(edge, candidate, discovery, columns)
                if factor is not None:
                    found.append(factor)

            found.sort(key=lambda f: (-f.confounding_strength, f.variable))
            if self.config.max_confounder_candidates is not None:
                found = found[:self.config.max_confounder_candidates]
            factors.extend(found)

        self.logger.debug(f"Found {len(factors)} confounding factors across {graph.edge_count} edges")
        return tuple(factors)

    def _score(self, edge: CausalRelationship, candidate: str,
               discovery: DiscoveryResult, columns) -> Optional[ConfoundingFactor]:
        toward_cause = discovery.selection(candidate, edge.cause)
        toward_effect = discovery.selection(candidate, edge.effect)
        if toward_cause is None or toward_effect is None:
            return None

        # Each association is read at the candidate's own lag toward that end
        with_cause = align_lagged([(columns[edge.cause], 0), (columns[candidate], toward_cause.lag)])
        with_effect = align_lagged([(columns[edge.effect], 0), (columns[candidate], toward_effect.lag)])
        # y = effect[t], x = cause[t - lag], z = candidate[t - lag - lag toward cause]
        triples = align_lagged([
            (columns[edge.effect], 0),
            (columns[edge.cause], edge.lag),
            (columns[candidate], edge.lag + toward_cause.lag)
        ])
        sample_size = min(with_cause.shape[0], with_effect.shape[0], triples.shape[0])
        if sample_size < self.config.min_sample_size:
            return None

        r_zx = pearson_correlation(with_cause[:, 1].copy(), with_cause[:, 0].copy())
        r_zy = pearson_correlation(with_effect[:, 1].copy(), with_effect[:, 0].copy())
        threshold = self.config.confounder_correlation_threshold
        if abs(r_zx) <= threshold or abs(r_zy) <= threshold:
            return None

        y, x, z = triples[:, 0].copy(), triples[:, 1].copy(), triples[:, 2].copy()
        partial = partial_correlation(
            pearson_correlation(x, y), pearson_correlation(z, x), pearson_correlation(z, y))
        return ConfoundingFactor(
            variable=candidate,
            confounded_pair_cause=edge.cause,
            confounded_pair_effect=edge.effect,
            confounding_strength=abs(r_zx * r_zy),
            cause_correlation=float(r_zx),
            effect_correlation=float(r_zy),
            partial_correlation=partial,
            sample_size=int(sample_size)
        )
