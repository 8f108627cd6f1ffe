"""Operations insight engine for food manufacturing dashboards."""

from ops_insight.config import BusinessConfig, load_business_config
from ops_insight.errors import InsightError, InsufficientData, InvalidConfiguration
from ops_insight.pipeline import DashboardInsights, InsightInputs, compute_all_insights

__all__ = [
    "BusinessConfig",
    "DashboardInsights",
    "InsightError",
    "InsightInputs",
    "InsufficientData",
    "InvalidConfiguration",
    "compute_all_insights",
    "load_business_config",
]
