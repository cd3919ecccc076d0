"""
Structural Equation Fitting

Fits target = sum(coef_i * parent_i) + intercept for every node with
parents, each parent entering at the lag of its own edge. Numerical
failures are reported per node and never abort the analysis.
"""

import logging
from typing import Dict, List, Sequence, Tuple, Union

import numpy as np
from scipy import stats

from core.config import CausalAnalysisConfig
from core.models import CausalGraph, CausalRelationship, FitFailure, StructuralEquation, StructuralTerm
from numerics.series import ObservationMatrix, align_lagged

MAX_CONDITION_NUMBER = 1e12


class StructuralEquationFitter:
    """Ordinary least squares fit of each node on its graph parents."""

    def __init__(self, config: CausalAnalysisConfig):
        self.config = config
        self.logger = logging.getLogger(__name__)

    def fit_all(self, graph: CausalGraph, matrix: ObservationMatrix
                ) -> Tuple[Tuple[StructuralEquation, ...], Tuple[FitFailure, ...]]:
        """Fit every non-exogenous node; returns (equations, failures)."""
        columns = matrix.columns()
        equations: List[StructuralEquation] = []
        failures: List[FitFailure] = []

        for node in graph.nodes:
            incoming = graph.incoming(node)
            if not incoming:
                continue
            outcome = self.fit(node, incoming, columns)
            if isinstance(outcome, FitFailure):
                self.logger.warning(f"Could not fit equation for {node}: {outcome.reason}")
                failures.append(outcome)
            else:
                equations.append(outcome)

        return tuple(equations), tuple(failures)

    def fit(self, target: str, incoming: Sequence[CausalRelationship],
            columns: Dict[str, np.ndarray]) -> Union[StructuralEquation, FitFailure]:
        """Fit one equation from the target's incoming edges."""
        edges = sorted(incoming, key=lambda e: e.cause)
        parents = tuple(e.cause for e in edges)
        lags = tuple(e.lag for e in edges)

        data = align_lagged([(columns[target], 0)] + [(columns[p], lag) for p, lag in zip(parents, lags)])
        n_samples = data.shape[0]
        n_parents = len(parents)

        def failure(reason: str) -> FitFailure:
            return FitFailure(target=target, parents=parents, reason=reason, sample_size=n_samples)

        if n_samples < n_parents + 2:
            return failure("too_few_samples")

        y = data[:, 0]
        if np.ptp(y) == 0.0:
            return failure("constant_target")

        design = np.column_stack([np.ones(n_samples), data[:, 1:]])
        if np.linalg.matrix_rank(design) < n_parents + 1:
            return failure("rank_deficient")
        condition = np.linalg.cond(design)
        if not np.isfinite(condition) or condition > MAX_CONDITION_NUMBER:
            return failure("ill_conditioned")

        beta, _, _, _ = np.linalg.lstsq(design, y, rcond=None)
        residuals = y - design @ beta
        ss_res = float(residuals @ residuals)
        ss_tot = float(np.sum((y - y.mean()) ** 2))

        r_squared = min(1.0, max(0.0, 1.0 - ss_res / ss_tot))
        dof = n_samples - n_parents - 1
        adjusted = 1.0 - (1.0 - r_squared) * (n_samples - 1) / dof

        sigma2 = ss_res / dof
        covariance = sigma2 * np.linalg.pinv(design.T @ design)
        standard_errors = np.sqrt(np.clip(np.diag(covariance), 0.0, None))

        terms = []
        for i, (parent, lag) in enumerate(zip(parents, lags), start=1):
            coefficient = float(beta[i])
            se = float(standard_errors[i])
            if se > 0.0:
                t_stat = coefficient / se
                p_value = float(2.0 * stats.t.sf(abs(t_stat), dof))
            else:
                t_stat = 0.0 if coefficient == 0.0 else float(np.sign(coefficient)) * float('inf')
                p_value = 1.0 if coefficient == 0.0 else 0.0
            terms.append(StructuralTerm(
                variable=parent,
                coefficient=coefficient,
                lag=lag,
                standard_error=se,
                t_statistic=t_stat,
                p_value=p_value
            ))

        self.logger.debug(f"Fit {target} on {', '.join(parents)}: R^2={r_squared:.3f} (n={n_samples})")
        return StructuralEquation(
            target=target,
            parents=parents,
            coefficients={term.variable: term.coefficient for term in terms},
            intercept=float(beta[0]),
            r_squared=r_squared,
            adjusted_r_squared=adjusted,
            sample_size=n_samples,
            residual_standard_error=float(np.sqrt(sigma2)),
            terms=tuple(terms)
        )


def model_fit_statistics(equations: Sequence[StructuralEquation],
                         failures: Sequence[FitFailure]) -> Dict[str, float]:
    """Aggregate fit quality across the fitted equations."""
    if equations:
        mean_r2 = float(np.mean([e.r_squared for e in equations]))
        mean_adjusted = float(np.mean([e.adjusted_r_squared for e in equations]))
    else:
        mean_r2 = 0.0
        mean_adjusted = 0.0
    return {
        'mean_r_squared': mean_r2,
        'mean_adjusted_r_squared': mean_adjusted,
        'fitted_equations': len(equations),
        'failed_equations': len(failures)
    }
