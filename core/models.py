"""
Causal Analysis Data Model

Observations consumed by the engine and the immutable records it
returns. Every record exports to plain dicts via ``to_dict()``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .serialization import SerializableRecord

NO_CAUSAL_PATH = "no causal path"
NO_FITTED_PATH = "all causal paths pass through unfit equations"


class AnalysisStatus(Enum):
    """Outcome of a top-level analysis call."""
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DropReason(Enum):
    """Why a candidate relationship is absent from the final graph."""
    INSUFFICIENT_DATA = "insufficient_data"
    CYCLE_BROKEN = "cycle_broken"
    WEAKER_DIRECTION = "weaker_direction"
    DISPERSION_ORIENTATION = "dispersion_orientation"


class ChangeKind(Enum):
    """How an edge differs between two graphs."""
    ADDED = "added"
    REMOVED = "removed"
    STRENGTHENED = "strengthened"
    WEAKENED = "weakened"
    REVERSED = "reversed"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class Observation(SerializableRecord):
    """One timestamped measurement record produced by a collector."""
    timestamp: Any
    variables: Dict[str, float] = field(default_factory=dict)
    source: str = ""
    context: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'variables', dict(self.variables))
        object.__setattr__(self, 'metadata', dict(self.metadata))

    def value(self, name: str) -> Optional[float]:
        return self.variables.get(name)


@dataclass(frozen=True)
class CausalRelationship(SerializableRecord):
    """A lagged, directed association between two variables."""
    cause: str
    effect: str
    lag: int
    strength: float
    p_value: float
    sample_size: int
    method: str = "lagged_correlation"
    significant: bool = True
    ambiguous: bool = False

    @property
    def key(self) -> Tuple[str, str]:
        return (self.cause, self.effect)

    def __str__(self) -> str:
        marker = " ambiguous" if self.ambiguous else ""
        return f"{self.cause} -> {self.effect} (lag={self.lag}, r={self.strength:.3f}{marker})"


@dataclass(frozen=True)
class SkippedRelationship(SerializableRecord):
    """A pair or edge left out of the graph, with the reason."""
    cause: str
    effect: str
    reason: DropReason
    detail: str = ""
    strength: Optional[float] = None


@dataclass(frozen=True)
class CausalGraph(SerializableRecord):
    """Directed graph of retained relationships (acyclic, one edge per pair)."""
    nodes: Tuple[str, ...] = ()
    edges: Tuple[CausalRelationship, ...] = ()
    removed_edges: Tuple[SkippedRelationship, ...] = ()
    node_count: int = 0
    edge_count: int = 0
    density: float = 0.0

    def edge(self, cause: str, effect: str) -> Optional[CausalRelationship]:
        for edge in self.edges:
            if edge.cause == cause and edge.effect == effect:
                return edge
        return None

    def has_edge(self, cause: str, effect: str) -> bool:
        return self.edge(cause, effect) is not None

    def parents(self, node: str) -> Tuple[str, ...]:
        return tuple(sorted(edge.cause for edge in self.edges if edge.effect == node))

    def children(self, node: str) -> Tuple[str, ...]:
        return tuple(sorted(edge.effect for edge in self.edges if edge.cause == node))

    def incoming(self, node: str) -> Tuple[CausalRelationship, ...]:
        return tuple(sorted((edge for edge in self.edges if edge.effect == node),
                            key=lambda edge: edge.cause))

    def edge_keys(self) -> Tuple[Tuple[str, str], ...]:
        return tuple(edge.key for edge in self.edges)


@dataclass(frozen=True)
class StructuralTerm(SerializableRecord):
    """One parent term of a structural equation."""
    variable: str
    coefficient: float
    lag: int
    standard_error: float
    t_statistic: float
    p_value: float


@dataclass(frozen=True)
class StructuralEquation(SerializableRecord):
    """target = sum(coefficient_i * parent_i) + intercept."""
    target: str
    parents: Tuple[str, ...]
    coefficients: Dict[str, float]
    intercept: float
    r_squared: float
    adjusted_r_squared: float
    sample_size: int
    residual_standard_error: float
    terms: Tuple[StructuralTerm, ...] = ()

    def predict(self, values: Dict[str, float]) -> float:
        return self.intercept + sum(self.coefficients[p] * values[p] for p in self.parents)


@dataclass(frozen=True)
class FitFailure(SerializableRecord):
    """A node whose structural equation could not be fit."""
    target: str
    parents: Tuple[str, ...]
    reason: str
    sample_size: int = 0


@dataclass(frozen=True)
class InterventionEffect(SerializableRecord):
    """Propagated effect of changing one variable on another."""
    intervened_variable: str
    target_variable: str
    delta: float
    estimated_effect: float
    paths: Tuple[Tuple[str, ...], ...] = ()
    path_effects: Tuple[float, ...] = ()
    annotation: str = ""

    @property
    def has_causal_path(self) -> bool:
        return self.annotation != NO_CAUSAL_PATH


@dataclass(frozen=True)
class ConfoundingFactor(SerializableRecord):
    """A third variable associated with both ends of a relationship."""
    variable: str
    confounded_pair_cause: str
    confounded_pair_effect: str
    confounding_strength: float
    cause_correlation: float
    effect_correlation: float
    partial_correlation: float
    sample_size: int


@dataclass(frozen=True)
class VariableSummary(SerializableRecord):
    """Descriptive statistics of one observed variable."""
    name: str
    count: int
    mean: float
    std: float
    minimum: float
    maximum: float


@dataclass(frozen=True)
class ValidationTest(SerializableRecord):
    """Validation scores of one retained relationship."""
    cause: str
    effect: str
    scores: Dict[str, float]
    validation_score: float
    passed: bool


@dataclass(frozen=True)
class ConfidenceBreakdown(SerializableRecord):
    """Components of the overall confidence score."""
    edge_strength: float = 0.0
    model_fit: float = 0.0
    sample_adequacy: float = 0.0
    drop_fraction: float = 0.0
    overall: float = 0.0


@dataclass(frozen=True)
class CausalAnalysisResult(SerializableRecord):
    """Full output of one analysis call."""
    analysis_timestamp: Any
    data_sample_count: int
    status: AnalysisStatus
    overall_confidence: float
    variables: Tuple[str, ...] = ()
    relationships: Tuple[CausalRelationship, ...] = ()
    graph: CausalGraph = field(default_factory=CausalGraph)
    structural_equations: Tuple[StructuralEquation, ...] = ()
    fit_failures: Tuple[FitFailure, ...] = ()
    model_fit_statistics: Dict[str, float] = field(default_factory=dict)
    intervention_effects: Tuple[InterventionEffect, ...] = ()
    confounding_factors: Tuple[ConfoundingFactor, ...] = ()
    skipped_relationships: Tuple[SkippedRelationship, ...] = ()
    validation: Tuple[ValidationTest, ...] = ()
    variable_summaries: Tuple[VariableSummary, ...] = ()
    confidence: ConfidenceBreakdown = field(default_factory=ConfidenceBreakdown)

    @property
    def is_complete(self) -> bool:
        return self.status == AnalysisStatus.COMPLETED

    @property
    def insufficient_data(self) -> Tuple[SkippedRelationship, ...]:
        return tuple(s for s in self.skipped_relationships
                     if s.reason == DropReason.INSUFFICIENT_DATA)

    def equation_for(self, target: str) -> Optional[StructuralEquation]:
        for equation in self.structural_equations:
            if equation.target == target:
                return equation
        return None

    def summary_for(self, name: str) -> Optional[VariableSummary]:
        for summary in self.variable_summaries:
            if summary.name == name:
                return summary
        return None


@dataclass(frozen=True)
class TimeWindow(SerializableRecord):
    """A contiguous slice of the time-ordered observations and its analysis."""
    index: int
    start_index: int
    end_index: int
    start_time: Any
    end_time: Any
    analysis: CausalAnalysisResult
    stability_score: float = 1.0

    @property
    def sample_count(self) -> int:
        return self.end_index - self.start_index


@dataclass(frozen=True)
class CausalStabilityMetric(SerializableRecord):
    """How consistently an edge appears across windows."""
    cause: str
    effect: str
    appearance_count: int
    window_count: int
    appearance_fraction: float
    mean_strength: float
    strength_variance: float


@dataclass(frozen=True)
class EdgeChange(SerializableRecord):
    """Before/after state of one edge between two graphs."""
    cause: str
    effect: str
    kind: ChangeKind
    before: Optional[float]
    after: Optional[float]
    delta: float


@dataclass(frozen=True)
class CausalChangePoint(SerializableRecord):
    """A window boundary where the causal structure shifts."""
    timestamp: Any
    window_index: int
    changes: Tuple[EdgeChange, ...]
    magnitude: float


@dataclass(frozen=True)
class TemporalCausalResult(SerializableRecord):
    """Windowed analysis with stability metrics and change points."""
    analysis_timestamp: Any
    data_sample_count: int
    status: AnalysisStatus
    windows: Tuple[TimeWindow, ...] = ()
    stability_metrics: Tuple[CausalStabilityMetric, ...] = ()
    change_points: Tuple[CausalChangePoint, ...] = ()
    window_stability: Dict[str, float] = field(default_factory=dict)

    def metric_for(self, cause: str, effect: str) -> Optional[CausalStabilityMetric]:
        for metric in self.stability_metrics:
            if metric.cause == cause and metric.effect == effect:
                return metric
        return None


@dataclass(frozen=True)
class CausalEvolution(SerializableRecord):
    """Structured account of how causal structure changed."""
    similarity: float
    relationship_count_before: int
    relationship_count_after: int
    confidence_before: float
    confidence_after: float
    variables_added: Tuple[str, ...] = ()
    variables_removed: Tuple[str, ...] = ()
    changes: Tuple[EdgeChange, ...] = ()


@dataclass(frozen=True)
class CausalComparisonResult(SerializableRecord):
    """Baseline vs comparison analysis and their structural differences."""
    baseline_analysis: CausalAnalysisResult
    comparison_analysis: CausalAnalysisResult
    causal_similarity: float
    significant_differences: Tuple[EdgeChange, ...]
    causal_evolution: CausalEvolution
    status: AnalysisStatus = AnalysisStatus.COMPLETED
