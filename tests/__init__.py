"""
ALARM Causal Analysis Tests
Unit and integration suites for the causal analysis engine

This module contains test components:
- Unit Tests: numerics, discovery, graph, structural fitting, intervention,
  confounding, confidence, validation, temporal and comparison components
- Integration Tests: end-to-end properties of the public engine
"""
