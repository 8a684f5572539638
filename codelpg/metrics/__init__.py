"""
Metrics module.

Provides Halstead software-science metrics over a semantic model.
"""

from codelpg.metrics.halstead import HalsteadMetrics, AGGREGATE_VOCABULARY
from codelpg.metrics.calculator import HalsteadCalculator

__all__ = [
    "HalsteadMetrics",
    "HalsteadCalculator",
    "AGGREGATE_VOCABULARY",
]
