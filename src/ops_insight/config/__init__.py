"""Business configuration and its JSON loader."""

from ops_insight.config.business import (
    DEFAULT_BUSINESS_CONFIG,
    PROFIT_METRICS,
    BusinessConfig,
    ProfitCenterGoal,
    ProfitTargets,
)
from ops_insight.config.loader import config_from_dict, load_business_config

__all__ = [
    "DEFAULT_BUSINESS_CONFIG",
    "PROFIT_METRICS",
    "BusinessConfig",
    "ProfitCenterGoal",
    "ProfitTargets",
    "config_from_dict",
    "load_business_config",
]
