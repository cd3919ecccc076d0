"""
Shared fixtures for the causal analysis tests.

Synthetic measurement histories where the causes are recorded one
step before their effects, so that lagged correlation can orient
the true edges:
    ExecutionTime[t] = 1 + 0.3 * CodeComplexity[t-1]
                       + 2.0 * (1 - TestCoverage[t-1]) + noise
    MemoryUsage[t]   = 50 + 15 * CodeComplexity[t-1] + noise
TeamSize is independent noise.
"""

import os
import sys
from datetime import datetime, timedelta

import numpy as np
import pytest

# Add the project root to the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from core.config import CausalAnalysisConfig
from core.models import Observation

BASE_TIME = datetime(2025, 3, 3, 8, 0)
INTERVAL = timedelta(minutes=15)


def make_observations(n=50, seed=42, start=BASE_TIME, coverage_weight=2.0,
                      memory_weight=15.0, source="synthetic"):
    """Generate n observations of the synthetic process."""
    rng = np.random.default_rng(seed)
    complexity = rng.uniform(1.0, 7.5, n + 1)
    coverage = rng.uniform(0.0, 1.0, n + 1)
    team_size = rng.uniform(2.0, 8.0, n + 1)
    execution_noise = rng.normal(0.0, 0.05, n)
    memory_noise = rng.normal(0.0, 5.0, n)
    memory_baseline = rng.uniform(1.0, 7.5, n)

    observations = []
    for t in range(n):
        execution = 1.0 + 0.3 * complexity[t] + coverage_weight * (1.0 - coverage[t]) + execution_noise[t]
        if memory_weight:
            memory = 50.0 + memory_weight * complexity[t] + memory_noise[t]
        else:
            memory = 50.0 + 15.0 * memory_baseline[t] + memory_noise[t]
        observations.append(Observation(
            timestamp=start + t * INTERVAL,
            variables={
                'CodeComplexity': float(complexity[t + 1]),
                'TestCoverage': float(coverage[t + 1]),
                'TeamSize': float(team_size[t + 1]),
                'ExecutionTime': float(execution),
                'MemoryUsage': float(memory)
            },
            source=source,
            context="refactoring-run"
        ))
    return observations


def make_same_time_observations(n=50, seed=42, start=BASE_TIME):
    """
    Generate n observations with every variable recorded at the same step:
        ExecutionTime = 1 + 0.3 * CodeComplexity + 2.0 * (1 - TestCoverage) + noise
        MemoryUsage   = 50 + 15 * CodeComplexity + noise
    """
    rng = np.random.default_rng(seed)
    complexity = rng.uniform(1.0, 7.5, n)
    coverage = rng.uniform(0.0, 1.0, n)
    execution = 1.0 + 0.3 * complexity + 2.0 * (1.0 - coverage) + rng.normal(0.0, 0.05, n)
    memory = 50.0 + 15.0 * complexity + rng.normal(0.0, 5.0, n)

    return [
        Observation(
            timestamp=start + t * INTERVAL,
            variables={
                'CodeComplexity': float(complexity[t]),
                'TestCoverage': float(coverage[t]),
                'ExecutionTime': float(execution[t]),
                'MemoryUsage': float(memory[t])
            },
            source="synthetic",
            context="refactoring-run"
        )
        for t in range(n)
    ]


@pytest.fixture
def observations():
    return make_observations()


@pytest.fixture
def shifted_observations():
    """Same process without the TestCoverage effect."""
    return make_observations(seed=7, coverage_weight=0.0)


@pytest.fixture
def config():
    return CausalAnalysisConfig()
