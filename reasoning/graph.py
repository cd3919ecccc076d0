"""
Causal Graph Construction

Aggregates discovered relationships into a directed acyclic graph:
one edge per ordered pair, no self-loops, cycles broken by removing
the weakest edge on each cycle until none remain.
"""

import logging
import math
from typing import Dict, Iterable, List, Sequence, Tuple

import networkx as nx

from core.models import (
    CausalGraph,
    CausalRelationship,
    ChangeKind,
    DropReason,
    EdgeChange,
    SkippedRelationship
)


def _preferred(candidate: CausalRelationship, current: CausalRelationship) -> bool:
    """Strongest |strength| wins, then lower p-value, then shorter lag."""
    return ((-abs(candidate.strength), candidate.p_value, candidate.lag) <
            (-abs(current.strength), current.p_value, current.lag))


class CausalGraphBuilder:
    """Builds a CausalGraph from discovered relationships."""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def build(self, relationships: Iterable[CausalRelationship],
              variables: Sequence[str] = ()) -> CausalGraph:
        """Deduplicate, drop self-loops, break cycles and compute density."""
        edges = self.deduplicate(relationships)
        removed: List[SkippedRelationship] = []

        graph = self._to_digraph(variables, edges.values())
        while True:
            try:
                cycle = nx.find_cycle(graph, orientation='original')
            except nx.NetworkXNoCycle:
                break

            on_cycle = [edges[(u, v)] for u, v, _ in cycle]
            weakest = self._weakest(on_cycle)
            graph.remove_edge(weakest.cause, weakest.effect)
            del edges[weakest.key]

            path = " -> ".join([u for u, _, _ in cycle] + [cycle[0][0]])
            removed.append(SkippedRelationship(
                cause=weakest.cause,
                effect=weakest.effect,
                reason=DropReason.CYCLE_BROKEN,
                detail=f"weakest edge on cycle {path}",
                strength=weakest.strength
            ))
            self.logger.debug(f"Broke cycle {path} by removing {weakest}")

        nodes = tuple(sorted(graph.nodes))
        retained = tuple(sorted(edges.values(), key=lambda e: (e.cause, e.effect)))
        node_count = len(nodes)
        possible = node_count * (node_count - 1)

        return CausalGraph(
            nodes=nodes,
            edges=retained,
            removed_edges=tuple(removed),
            node_count=node_count,
            edge_count=len(retained),
            density=len(retained) / possible if possible > 0 else 0.0
        )

    def deduplicate(self, relationships: Iterable[CausalRelationship]) -> Dict[Tuple[str, str], CausalRelationship]:
        """Keep the preferred relationship per ordered pair, skipping self-loops."""
        edges: Dict[Tuple[str, str], CausalRelationship] = {}
        for relationship in relationships:
            if relationship.cause == relationship.effect:
                self.logger.debug(f"Ignoring self-loop on {relationship.cause}")
                continue
            current = edges.get(relationship.key)
            if current is None or _preferred(relationship, current):
                edges[relationship.key] = relationship
        return edges

    def _weakest(self, edges: Sequence[CausalRelationship]) -> CausalRelationship:
        # Equal strengths: the pair sorting last is removed
        weakest = edges[0]
        for edge in edges[1:]:
            if math.isclose(abs(edge.strength), abs(weakest.strength)):
                if edge.key > weakest.key:
                    weakest = edge
            elif abs(edge.strength) < abs(weakest.strength):
                weakest = edge
        return weakest

    @staticmethod
    def _to_digraph(variables: Sequence[str], edges: Iterable[CausalRelationship]) -> nx.DiGraph:
        graph = nx.DiGraph()
        ordered = sorted(edges, key=lambda e: (e.cause, e.effect))
        graph.add_nodes_from(sorted(set(variables) | {n for e in ordered for n in e.key}))
        for edge in ordered:
            graph.add_edge(edge.cause, edge.effect, strength=edge.strength, lag=edge.lag)
        return graph


def to_networkx(graph: CausalGraph) -> nx.DiGraph:
    """networkx view of a CausalGraph, nodes and edges in sorted order."""
    digraph = nx.DiGraph()
    digraph.add_nodes_from(graph.nodes)
    for edge in graph.edges:
        digraph.add_edge(edge.cause, edge.effect, strength=edge.strength, lag=edge.lag)
    return digraph


def edge_changes(before: CausalGraph, after: CausalGraph, threshold: float,
                 include_unchanged: bool = False) -> Tuple[EdgeChange, ...]:
    """
    Per-edge differences between two graphs, in (cause, effect) order.

    Shared edges count as changed when their strength moves by more
    than threshold or flips sign.
    """
    before_edges = {e.key: e.strength for e in before.edges}
    after_edges = {e.key: e.strength for e in after.edges}

    changes = []
    for cause, effect in sorted(set(before_edges) | set(after_edges)):
        old = before_edges.get((cause, effect))
        new = after_edges.get((cause, effect))
        if old is None:
            kind, delta = ChangeKind.ADDED, new
        elif new is None:
            kind, delta = ChangeKind.REMOVED, -old
        else:
            delta = new - old
            if old * new < 0:
                kind = ChangeKind.REVERSED
            elif abs(delta) > threshold:
                kind = ChangeKind.STRENGTHENED if abs(new) > abs(old) else ChangeKind.WEAKENED
            else:
                kind = ChangeKind.UNCHANGED
        if kind == ChangeKind.UNCHANGED and not include_unchanged:
            continue
        changes.append(EdgeChange(cause=cause, effect=effect, kind=kind,
                                  before=old, after=new, delta=delta))
    return tuple(changes)
