"""
Relationship Discovery
Lagged-correlation tests over every variable pair

For each unordered pair the lagged correlation profile is computed in
both directions, the best significant lag is chosen per direction, and
a direction decision is made:
- only one direction clears the thresholds: directed relationship
- both clear, one materially stronger: keep it, drop the weaker
- both clear and comparable: orient by relative dispersion when one
  variable disperses clearly more, otherwise keep both, flagged ambiguous
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from itertools import combinations
from typing import Dict, List, Optional, Tuple

import numpy as np

from core.cancellation import is_cancelled
from core.config import CausalAnalysisConfig
from core.models import CausalRelationship, DropReason, SkippedRelationship
from numerics.kernels import lagged_correlation_profile
from numerics.series import ObservationMatrix, relative_dispersion
from numerics.significance import is_significant


@dataclass(frozen=True)
class LagSelection:
    """Best lag of one direction (cause at t - lag, effect at t)."""
    cause: str
    effect: str
    lag: int
    strength: float
    p_value: float
    sample_size: int
    clears: bool

    def to_relationship(self, ambiguous: bool = False) -> CausalRelationship:
        return CausalRelationship(
            cause=self.cause,
            effect=self.effect,
            lag=self.lag,
            strength=self.strength,
            p_value=self.p_value,
            sample_size=self.sample_size,
            significant=self.clears,
            ambiguous=ambiguous
        )


@dataclass(frozen=True)
class PairOutcome:
    """Result of testing one unordered pair in both directions."""
    pair: Tuple[str, str]
    forward: Optional[LagSelection]
    backward: Optional[LagSelection]
    relationships: Tuple[CausalRelationship, ...] = ()
    skipped: Tuple[SkippedRelationship, ...] = ()


@dataclass(frozen=True)
class DiscoveryResult:
    """All relationships found plus the per-direction lag selections."""
    relationships: Tuple[CausalRelationship, ...]
    skipped: Tuple[SkippedRelationship, ...]
    selections: Dict[Tuple[str, str], LagSelection]
    pairs_tested: int
    cancelled: bool = False

    @property
    def insufficient_data(self) -> Tuple[SkippedRelationship, ...]:
        return tuple(s for s in self.skipped if s.reason == DropReason.INSUFFICIENT_DATA)

    def selection(self, cause: str, effect: str) -> Optional[LagSelection]:
        return self.selections.get((cause, effect))

    def is_directed(self, cause: str, effect: str) -> bool:
        """True when a non-ambiguous relationship cause -> effect was found."""
        return any(r.cause == cause and r.effect == effect and not r.ambiguous
                   for r in self.relationships)


class RelationshipDiscoveryEngine:
    """Tests each variable pair for a lagged causal signal."""

    def __init__(self, config: CausalAnalysisConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)

    def discover(self, matrix: ObservationMatrix, max_workers: Optional[int] = None,
                 cancellation_token=None) -> DiscoveryResult:
        """Run the pair tests and reduce them in canonical order."""
        columns = matrix.columns()
        pairs = list(combinations(matrix.variables, 2))
        workers = max_workers if max_workers is not None else self.config.max_workers

        def run(pair: Tuple[str, str]) -> Optional[PairOutcome]:
            if is_cancelled(cancellation_token):
                return None
            return self.test_pair(pair[0], pair[1], columns[pair[0]], columns[pair[1]])

        if workers > 1 and len(pairs) > 1:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                outcomes = list(executor.map(run, pairs))
        else:
            outcomes = [run(pair) for pair in pairs]

        completed = [outcome for outcome in outcomes if outcome is not None]
        cancelled = len(completed) < len(pairs)
        if cancelled:
            self.logger.warning(
                f"Discovery cancelled after {len(completed)} of {len(pairs)} pair tests")

        relationships: List[CausalRelationship] = []
        skipped: List[SkippedRelationship] = []
        selections: Dict[Tuple[str, str], LagSelection] = {}
        for outcome in completed:
            relationships.extend(outcome.relationships)
            skipped.extend(outcome.skipped)
            for selection in (outcome.forward, outcome.backward):
                if selection is not None:
                    selections[(selection.cause, selection.effect)] = selection

        relationships.sort(key=lambda r: (r.cause, r.effect))
        skipped.sort(key=lambda s: (s.cause, s.effect, s.reason.value))

        self.logger.debug(
            f"Tested {len(completed)} pairs: {len(relationships)} relationships, "
            f"{len(skipped)} skipped")
        return DiscoveryResult(
            relationships=tuple(relationships),
            skipped=tuple(skipped),
            selections=selections,
            pairs_tested=len(completed),
            cancelled=cancelled
        )

    def test_pair(self, a: str, b: str, x: np.ndarray, y: np.ndarray) -> PairOutcome:
        """Test a -> b and b -> a and apply the direction decision."""
        forward = self.select_lag(a, b, x, y)
        backward = self.select_lag(b, a, y, x)

        if forward is None and backward is None:
            self.logger.debug(f"Insufficient data for pair ({a}, {b})")
            return PairOutcome(
                pair=(a, b), forward=None, backward=None,
                skipped=(SkippedRelationship(
                    cause=a, effect=b,
                    reason=DropReason.INSUFFICIENT_DATA,
                    detail=f"fewer than {self.config.min_sample_size} paired samples at every lag"
                ),)
            )

        forward_clears = forward is not None and forward.clears
        backward_clears = backward is not None and backward.clears

        if forward_clears and backward_clears:
            return self._resolve_direction(a, b, forward, backward, x, y)
        if forward_clears:
            return PairOutcome((a, b), forward, backward, relationships=(forward.to_relationship(),))
        if backward_clears:
            return PairOutcome((a, b), forward, backward, relationships=(backward.to_relationship(),))
        return PairOutcome((a, b), forward, backward)

    def select_lag(self, cause: str, effect: str, x: np.ndarray,
                   y: np.ndarray) -> Optional[LagSelection]:
        """
        Pick the best lag for cause -> effect.

        Lags with fewer than min_sample_size paired samples are ignored.
        The largest |r| among lags that clear the thresholds wins, ties
        going to the smaller lag; when no lag clears, the largest |r|
        overall is reported with clears=False. Returns None when no lag
        has enough samples.
        """
        coefficients, counts = lagged_correlation_profile(x, y, self.config.max_lag)

        candidates = []
        for lag in range(self.config.max_lag + 1):
            sample_size = int(counts[lag])
            if sample_size < self.config.min_sample_size:
                continue
            r = float(coefficients[lag])
            clears, p_value = is_significant(
                r, sample_size,
                self.config.min_correlation_threshold,
                self.config.significance_alpha
            )
            candidates.append(LagSelection(cause, effect, lag, r, p_value, sample_size, clears))

        if not candidates:
            return None

        pool = [c for c in candidates if c.clears] or candidates
        return min(pool, key=lambda c: (-abs(c.strength), c.lag))

    def _resolve_direction(self, a: str, b: str, forward: LagSelection,
                           backward: LagSelection, x: np.ndarray, y: np.ndarray) -> PairOutcome:
        strong_f = abs(forward.strength)
        strong_b = abs(backward.strength)
        relative_difference = abs(strong_f - strong_b) / max(strong_f, strong_b)

        if relative_difference >= self.config.direction_margin:
            winner, loser = (forward, backward) if strong_f > strong_b else (backward, forward)
            dropped = SkippedRelationship(
                cause=loser.cause,
                effect=loser.effect,
                reason=DropReason.WEAKER_DIRECTION,
                detail=f"weaker than {winner.cause} -> {winner.effect} "
                       f"by {relative_difference:.0%}",
                strength=loser.strength
            )
            return PairOutcome((a, b), forward, backward,
                               relationships=(winner.to_relationship(),),
                               skipped=(dropped,))

        oriented = self.orient_by_dispersion(forward, backward, x, y)
        if oriented is not None:
            winner, loser, ratio = oriented
            self.logger.debug(
                f"Oriented {winner.cause} -> {winner.effect} by relative dispersion (ratio {ratio:.2f})")
            dropped = SkippedRelationship(
                cause=loser.cause,
                effect=loser.effect,
                reason=DropReason.DISPERSION_ORIENTATION,
                detail=f"{winner.cause} disperses {ratio:.2f}x more than {winner.effect}",
                strength=loser.strength
            )
            return PairOutcome((a, b), forward, backward,
                               relationships=(winner.to_relationship(ambiguous=True),),
                               skipped=(dropped,))

        self.logger.debug(f"Ambiguous direction between {a} and {b}")
        return PairOutcome(
            (a, b), forward, backward,
            relationships=(forward.to_relationship(ambiguous=True),
                           backward.to_relationship(ambiguous=True))
        )

    def orient_by_dispersion(self, forward: LagSelection, backward: LagSelection,
                             x: np.ndarray, y: np.ndarray
                             ) -> Optional[Tuple[LagSelection, LagSelection, float]]:
        """
        Orient a tied pair from the variable with the larger relative dispersion.

        The cause is taken to be the variable whose squared coefficient of
        variation exceeds the other's by at least orientation_dispersion_ratio.
        Returns (winner, loser, ratio), or None when the rule does not decide.
        """
        dispersion_x = relative_dispersion(x)
        dispersion_y = relative_dispersion(y)
        if dispersion_x is None or dispersion_y is None:
            return None

        low, high = sorted((dispersion_x, dispersion_y))
        if high <= 0.0:
            return None
        ratio = high / max(low, 1e-12)
        if ratio < self.config.orientation_dispersion_ratio:
            return None
        if dispersion_x > dispersion_y:
            return forward, backward, ratio
        return backward, forward, ratio
