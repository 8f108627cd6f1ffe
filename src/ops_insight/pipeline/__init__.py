"""Orchestration of all engines into one dashboard result."""

from ops_insight.pipeline.orchestrator import (
    DashboardInsights,
    InsightInputs,
    compute_all_insights,
)

__all__ = ["DashboardInsights", "InsightInputs", "compute_all_insights"]
