"""Performance analytics - ROI, CLV, variance, drawdown and history queries."""

from .analyzer import (
    PerformanceAnalyzer,
    PerformanceMetrics,
    PerformanceReport,
    VarianceReport,
    DrawdownReport,
)

__all__ = [
    "PerformanceAnalyzer",
    "PerformanceMetrics",
    "PerformanceReport",
    "VarianceReport",
    "DrawdownReport",
]
