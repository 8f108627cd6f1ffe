"""
Business configuration: every ratio, threshold, lead time and cost rate the
engines consume. Pure data plus contract checks; no computation.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from ops_insight.errors import InvalidConfiguration

PROFIT_METRICS = ("raw_material", "sub_material", "labor", "utilities", "waste")
FRESHNESS_COMPONENTS = ("recency", "turnover", "stability")


@dataclass(frozen=True)
class ProfitTargets:
    """Target revenue/cost multiples per cost metric (revenue / cost)."""

    raw_material: float
    sub_material: float
    labor: float
    utilities: float
    waste: float

    def get(self, metric: str) -> float:
        return float(getattr(self, metric))


@dataclass(frozen=True)
class ProfitCenterGoal:
    # Monthly revenue at which this bracket becomes active
    revenue_bracket: float
    targets: ProfitTargets
    label: str = ""


def _default_goals() -> tuple[ProfitCenterGoal, ...]:
    return (
        ProfitCenterGoal(0, ProfitTargets(2.5, 10.0, 4.0, 25.0, 50.0), "base"),
        ProfitCenterGoal(
            100_000_000, ProfitTargets(2.8, 11.0, 4.5, 28.0, 60.0), "growth"
        ),
        ProfitCenterGoal(
            300_000_000, ProfitTargets(3.0, 12.0, 5.0, 30.0, 70.0), "scale"
        ),
    )


_MAPPING_FIELDS = (
    "service_level_z",
    "freshness_weights",
    "channel_fee_rates",
    "profit_metric_weights",
    "stockout_risk_by_status",
    "abc_strategy_notes",
)


@dataclass(frozen=True)
class BusinessConfig:
    """
    Immutable set of business knobs supplied by the caller.

    Percent-valued fields are on a 0-100 scale; ratio/rate fields are
    fractions (0-1).
    """

    # Margin / waste
    default_margin_rate: float = 0.15
    waste_unit_cost: float = 1000.0
    waste_threshold_pct: float = 3.0

    # Cost estimation ratios
    labor_cost_ratio: float = 0.25
    overhead_ratio: float = 0.05
    monthly_fixed_overhead: float = 0.0  # 0 = not configured, use overhead_ratio
    variable_overhead_per_unit: float = 0.0
    sub_material_keywords: tuple[str, ...] = (
        "포장", "박스", "비닐", "라벨", "테이프", "봉투", "스티커", "밴드", "용기", "캡", "뚜껑",
        "packaging", "box", "label", "tape", "sticker", "container", "lid",
    )
    sub_material_code_prefixes: tuple[str, ...] = ("ZIP_S_",)

    # Ordering / inventory
    default_lead_time: float = 3.0
    lead_time_std_dev: float = 0.0
    default_service_level: int = 95
    service_level_z: Mapping[int, float] = field(
        default_factory=lambda: {90: 1.282, 95: 1.645, 97: 1.881, 99: 2.326}
    )
    order_cost: float = 50_000.0
    holding_cost_rate: float = 0.20
    stock_days_urgent: float = 3.0
    stock_days_warning: float = 7.0
    overstock_multiplier: float = 3.0
    low_turnover_threshold: float = 1.0
    stockout_cost_multiplier: float = 1.5
    stockout_risk_by_status: Mapping[str, float] | None = None
    include_waste_in_total_cost: bool = False
    abc_strategy_notes: Mapping[str, str] = field(
        default_factory=lambda: {
            "A": "Tight control: weekly review, EOQ ordering, supplier negotiation",
            "B": "Periodic review: bi-weekly review, standard safety stock",
            "C": "Simple control: bulk ordering, minimal review",
            "N/A": "Unclassified: no purchase spend in range",
        }
    )

    # ABC-XYZ
    abc_class_a_threshold: float = 70.0
    abc_class_b_threshold: float = 90.0
    xyz_class_x_threshold: float = 0.5
    xyz_class_y_threshold: float = 1.0

    # Freshness
    freshness_staleness_days: float = 30.0
    freshness_turnover_target: float = 4.0
    freshness_cv_ceiling: float = 2.0
    freshness_weights: Mapping[str, float] = field(
        default_factory=lambda: {"recency": 0.4, "turnover": 0.3, "stability": 0.3}
    )
    # (grade, minimum score) from best to worst; anything below is "danger"
    freshness_grade_bands: tuple[tuple[str, float], ...] = (
        ("safe", 80.0),
        ("good", 60.0),
        ("caution", 40.0),
        ("warning", 20.0),
    )

    # Recipe / yield / anomaly
    standard_yield_pct: float = 97.0
    yield_drop_tolerance: float = 3.0
    recipe_variance_tolerance: float = 5.0
    price_increase_threshold: float = 10.0
    anomaly_severity_high_pct: float = 30.0
    anomaly_severity_medium_pct: float = 15.0
    anomaly_top_n: int = 5

    # Profit center
    profit_center_goals: tuple[ProfitCenterGoal, ...] = field(
        default_factory=_default_goals
    )
    profit_metric_weights: Mapping[str, float] | None = None
    profit_score_cap: float = 150.0
    channel_fee_rates: Mapping[str, float] = field(default_factory=dict)

    # Inventory fallback chain
    fallback_safety_days: float = 7.0
    fallback_stock_ratio: float = 0.3

    def __post_init__(self) -> None:
        # Freeze nested tables so callers cannot mutate a shared config
        for name in _MAPPING_FIELDS:
            value = getattr(self, name)
            if value is not None and not isinstance(value, MappingProxyType):
                object.__setattr__(self, name, MappingProxyType(dict(value)))

    def replace(self, **changes: Any) -> BusinessConfig:
        """Return a copy with the given fields overridden."""
        return dataclasses.replace(self, **changes)

    def z_score(self, service_level: float) -> float:
        key = int(service_level) if float(service_level).is_integer() else service_level
        if key not in self.service_level_z:
            supported = ", ".join(str(k) for k in sorted(self.service_level_z))
            raise InvalidConfiguration(
                f"Unsupported service level {service_level}% (supported: {supported})"
            )
        return float(self.service_level_z[key])

    def validate(self) -> None:
        """Check structural contracts. Raises InvalidConfiguration."""
        if self.default_lead_time <= 0:
            raise InvalidConfiguration("default_lead_time must be positive")
        if self.lead_time_std_dev < 0:
            raise InvalidConfiguration("lead_time_std_dev cannot be negative")
        for name in (
            "order_cost",
            "holding_cost_rate",
            "labor_cost_ratio",
            "overhead_ratio",
            "monthly_fixed_overhead",
            "variable_overhead_per_unit",
            "waste_unit_cost",
            "stockout_cost_multiplier",
        ):
            if getattr(self, name) < 0:
                raise InvalidConfiguration(f"{name} cannot be negative")
        if not 0 < self.abc_class_a_threshold <= self.abc_class_b_threshold <= 100:
            raise InvalidConfiguration(
                "ABC thresholds must satisfy 0 < A <= B <= 100, got "
                f"A={self.abc_class_a_threshold}, B={self.abc_class_b_threshold}"
            )
        if not 0 <= self.xyz_class_x_threshold <= self.xyz_class_y_threshold:
            raise InvalidConfiguration(
                "XYZ thresholds must satisfy 0 <= X <= Y, got "
                f"X={self.xyz_class_x_threshold}, Y={self.xyz_class_y_threshold}"
            )
        if self.freshness_staleness_days <= 0:
            raise InvalidConfiguration("freshness_staleness_days must be positive")
        if self.freshness_turnover_target <= 0 or self.freshness_cv_ceiling <= 0:
            raise InvalidConfiguration(
                "freshness_turnover_target and freshness_cv_ceiling must be positive"
            )
        _check_weights("freshness_weights", self.freshness_weights, FRESHNESS_COMPONENTS)
        minimums = [minimum for _, minimum in self.freshness_grade_bands]
        if not minimums or any(a <= b for a, b in zip(minimums, minimums[1:])):
            raise InvalidConfiguration(
                f"freshness_grade_bands minimums must be strictly descending, got {minimums}"
            )
        if self.stock_days_warning < self.stock_days_urgent:
            raise InvalidConfiguration("stock_days_warning cannot be below stock_days_urgent")
        if self.profit_metric_weights is not None:
            _check_weights(
                "profit_metric_weights", self.profit_metric_weights, PROFIT_METRICS
            )
        if self.anomaly_severity_medium_pct > self.anomaly_severity_high_pct:
            raise InvalidConfiguration(
                "anomaly_severity_medium_pct cannot exceed anomaly_severity_high_pct"
            )
        if not self.service_level_z:
            raise InvalidConfiguration("service_level_z table is empty")
        for goal in self.profit_center_goals:
            for metric in PROFIT_METRICS:
                if goal.targets.get(metric) < 0:
                    raise InvalidConfiguration(
                        f"Negative target multiple for {metric} in bracket "
                        f"{goal.revenue_bracket}"
                    )
        for channel, rate in self.channel_fee_rates.items():
            if not 0 <= rate < 1:
                raise InvalidConfiguration(
                    f"Channel fee rate for {channel} must be in [0, 1), got {rate}"
                )


def _check_weights(
    name: str, weights: Mapping[str, float], allowed: tuple[str, ...]
) -> None:
    unknown = set(weights) - set(allowed)
    if unknown:
        raise InvalidConfiguration(f"{name} has unknown keys: {sorted(unknown)}")
    if any(w < 0 for w in weights.values()):
        raise InvalidConfiguration(f"{name} cannot contain negative weights")
    if sum(weights.values()) <= 0:
        raise InvalidConfiguration(f"{name} must have a positive sum")


DEFAULT_BUSINESS_CONFIG = BusinessConfig()
