"""
Observation matrix and lag alignment helpers.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np


def sort_observations(observations: Iterable[Any]) -> List[Any]:
    """Stable sort by timestamp; the input sequence is left untouched."""
    return sorted(observations, key=lambda observation: observation.timestamp)


@dataclass(frozen=True, eq=False)
class ObservationMatrix:
    """Time-ordered observations as a dense float matrix (NaN = absent)."""
    variables: Tuple[str, ...]
    timestamps: Tuple[Any, ...]
    values: np.ndarray

    @classmethod
    def from_observations(cls, observations: Iterable[Any]) -> 'ObservationMatrix':
        ordered = sort_observations(observations)
        names = sorted({name for observation in ordered for name in observation.variables})
        index = {name: i for i, name in enumerate(names)}

        values = np.full((len(ordered), len(names)), np.nan, dtype=np.float64)
        for row, observation in enumerate(ordered):
            for name, value in observation.variables.items():
                if value is None:
                    continue
                values[row, index[name]] = float(value)
        values.setflags(write=False)

        return cls(
            variables=tuple(names),
            timestamps=tuple(observation.timestamp for observation in ordered),
            values=values
        )

    @property
    def n_observations(self) -> int:
        return self.values.shape[0]

    def column(self, name: str) -> np.ndarray:
        """Writable contiguous copy of one variable's series."""
        return np.array(self.values[:, self.variables.index(name)], dtype=np.float64)

    def columns(self) -> Dict[str, np.ndarray]:
        return {name: self.column(name) for name in self.variables}

    def observed_count(self, name: str) -> int:
        return int(np.count_nonzero(np.isfinite(self.values[:, self.variables.index(name)])))


def align_lagged(series: Sequence[Tuple[np.ndarray, int]]) -> np.ndarray:
    """
    Align several series on a common time index.

    Row t (for t in [max_lag, n)) holds series_i[t - lag_i] in column i.
    Rows with any missing value are dropped.
    """
    if not series:
        return np.empty((0, 0))

    n = len(series[0][0])
    max_lag = max(lag for _, lag in series)
    if n - max_lag <= 0:
        return np.empty((0, len(series)))

    columns = [values[max_lag - lag:n - lag] for values, lag in series]
    matrix = np.column_stack(columns)
    mask = np.all(np.isfinite(matrix), axis=1)
    return matrix[mask]


def relative_dispersion(values: np.ndarray) -> Optional[float]:
    """
    Squared coefficient of variation (variance / mean**2) of the finite values.

    Only defined for series that stay strictly on one side of zero; None
    otherwise or when fewer than two values are observed.
    """
    observed = values[np.isfinite(values)]
    if observed.size < 2:
        return None
    if observed.min() <= 0.0 <= observed.max():
        return None
    mean = float(observed.mean())
    return float(observed.var()) / (mean * mean)
