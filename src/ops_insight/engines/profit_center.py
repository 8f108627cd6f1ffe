"""
Profit Center Scorer.

Each cost metric is scored by how many won of revenue one won of that cost
brings in (the revenue multiple), against the target multiple of the active
revenue bracket:

    score = round(actual multiple / target multiple * 100), never below 0

A metric with no cost at all scores the fixed cap.

The bracket is chosen from the monthly revenue run rate.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType

from ops_insight.aggregation.buckets import (
    observed_range,
    span_days,
    week_key,
    week_label,
)
from ops_insight.aggregation.numeric import round_half_up, safe_div
from ops_insight.config.business import PROFIT_METRICS, BusinessConfig, ProfitCenterGoal
from ops_insight.engines.cost_breakdown import CostBreakdownInsight, is_sub_material
from ops_insight.errors import InvalidConfiguration
from ops_insight.records.core import (
    DailySalesRecord,
    LaborRecord,
    ProductionRecord,
    PurchaseRecord,
    UtilityRecord,
)

logger = logging.getLogger(__name__)

DAYS_PER_MONTH = 30

STATUS_BANDS = (("excellent", 110.0), ("good", 100.0), ("warning", 90.0))


@dataclass(frozen=True)
class MetricScore:
    metric: str
    cost: float
    target_multiple: float
    actual_multiple: float
    score: float
    status: str
    target_cost: float
    surplus: float  # target cost - actual cost; negative means over target


@dataclass(frozen=True)
class WeeklyProfitScore:
    week: str
    label: str
    revenue: float
    overall_score: float
    scores: Mapping[str, float]


@dataclass(frozen=True)
class ProfitCenterInsight:
    revenue: float
    monthly_revenue: float
    bracket: ProfitCenterGoal
    metrics: tuple[MetricScore, ...]
    overall_score: float
    overall_status: str
    weighted: bool
    weekly: tuple[WeeklyProfitScore, ...]


def net_revenue(record: DailySalesRecord, fee_rates: Mapping[str, float]) -> float:
    """Channel revenue after platform fees."""
    return sum(
        amount * (1.0 - fee_rates.get(channel, 0.0))
        for channel, amount in record.channel_revenue.items()
    )


def select_bracket(
    monthly_revenue: float, goals: Sequence[ProfitCenterGoal]
) -> ProfitCenterGoal:
    ordered = sorted(goals, key=lambda g: g.revenue_bracket)
    active = ordered[0]
    for goal in ordered:
        if goal.revenue_bracket <= monthly_revenue:
            active = goal
    return active


def score_metric(revenue: float, cost: float, target: float, cap: float) -> tuple[float, float]:
    """(actual multiple, score) for one metric."""
    if revenue <= 0:
        return 0.0, 0.0
    if cost <= 0:
        return 0.0, cap
    actual = revenue / cost
    if target <= 0:
        return actual, 0.0
    return actual, max(round_half_up(actual / target * 100.0), 0.0)


def status_for(score: float) -> str:
    for status, minimum in STATUS_BANDS:
        if score >= minimum:
            return status
    return "danger"


def overall_score(scores: Mapping[str, float], weights: Mapping[str, float] | None) -> float:
    if weights is None:
        return round_half_up(safe_div(sum(scores.values()), len(scores)))
    if any(w < 0 for w in weights.values()):
        raise InvalidConfiguration("profit_metric_weights cannot contain negative weights")
    total_weight = sum(weights.get(m, 0.0) for m in scores)
    if total_weight <= 0:
        raise InvalidConfiguration("profit_metric_weights must have a positive sum")
    return round_half_up(sum(weights.get(m, 0.0) * s for m, s in scores.items()) / total_weight)


def metric_costs(
    purchases: Sequence[PurchaseRecord],
    utilities: Sequence[UtilityRecord],
    labor: Sequence[LaborRecord],
    production: Sequence[ProductionRecord],
    config: BusinessConfig,
) -> dict[str, float]:
    """Cost per profit metric from raw records (purchase basis)."""
    raw = sub = 0.0
    for p in purchases:
        if is_sub_material(p.product_name, p.product_code, config):
            sub += p.total
        else:
            raw += p.total
    utility = sum(u.total_cost for u in utilities)
    if labor:
        labor_cost = sum(lab.total_pay for lab in labor)
    else:
        labor_cost = (raw + sub + utility) * config.labor_cost_ratio
    waste = sum(p.waste_finished_ea for p in production) * config.waste_unit_cost
    return {
        "raw_material": raw,
        "sub_material": sub,
        "labor": labor_cost,
        "utilities": utility,
        "waste": waste,
    }


def _weekly_scores(
    daily_sales: Sequence[DailySalesRecord],
    purchases: Sequence[PurchaseRecord],
    utilities: Sequence[UtilityRecord],
    labor: Sequence[LaborRecord],
    production: Sequence[ProductionRecord],
    bracket: ProfitCenterGoal,
    config: BusinessConfig,
) -> list[WeeklyProfitScore]:
    def in_week(records, key):
        return [r for r in records if week_key(r.date) == key]

    keys = sorted({week_key(d.date) for d in daily_sales})
    weekly = []
    for key in keys:
        revenue = sum(
            net_revenue(d, config.channel_fee_rates) for d in in_week(daily_sales, key)
        )
        costs = metric_costs(
            in_week(purchases, key),
            in_week(utilities, key),
            in_week(labor, key),
            in_week(production, key),
            config,
        )
        scores = {
            m: score_metric(
                revenue, costs[m], bracket.targets.get(m), config.profit_score_cap
            )[1]
            for m in PROFIT_METRICS
        }
        weekly.append(
            WeeklyProfitScore(
                week=key,
                label=week_label(key),
                revenue=revenue,
                overall_score=overall_score(scores, config.profit_metric_weights),
                scores=MappingProxyType(scores),
            )
        )
    return weekly


def compute_profit_center(
    daily_sales: Sequence[DailySalesRecord],
    purchases: Sequence[PurchaseRecord],
    utilities: Sequence[UtilityRecord],
    labor: Sequence[LaborRecord],
    production: Sequence[ProductionRecord],
    config: BusinessConfig,
    cost_breakdown: CostBreakdownInsight | None = None,
) -> ProfitCenterInsight | None:
    if not config.profit_center_goals:
        return None
    span = observed_range(daily_sales)
    if span is None:
        return None

    revenue = sum(net_revenue(d, config.channel_fee_rates) for d in daily_sales)
    monthly = round_half_up(revenue * DAYS_PER_MONTH / span_days(*span))
    bracket = select_bracket(monthly, config.profit_center_goals)

    costs = metric_costs(purchases, utilities, labor, production, config)
    if cost_breakdown is not None:
        # Consumption-basis totals when the breakdown has them
        costs["raw_material"] = cost_breakdown.raw_material_detail.total
        costs["sub_material"] = cost_breakdown.sub_material_detail.total
        costs["labor"] = cost_breakdown.labor_detail.amount

    metrics = []
    for metric in PROFIT_METRICS:
        target = bracket.targets.get(metric)
        cost = costs[metric]
        actual, score = score_metric(revenue, cost, target, config.profit_score_cap)
        target_cost = safe_div(revenue, target)
        metrics.append(
            MetricScore(
                metric=metric,
                cost=round_half_up(cost),
                target_multiple=target,
                actual_multiple=round_half_up(actual, 2),
                score=score,
                status=status_for(score),
                target_cost=round_half_up(target_cost),
                surplus=round_half_up(target_cost - cost),
            )
        )

    overall = overall_score(
        {m.metric: m.score for m in metrics}, config.profit_metric_weights
    )
    weekly = _weekly_scores(
        daily_sales, purchases, utilities, labor, production, bracket, config
    )

    logger.debug(
        "Profit center: monthly revenue %.0f -> bracket %s, overall %.0f",
        monthly,
        bracket.label or bracket.revenue_bracket,
        overall,
    )

    return ProfitCenterInsight(
        revenue=revenue,
        monthly_revenue=monthly,
        bracket=bracket,
        metrics=tuple(metrics),
        overall_score=overall,
        overall_status=status_for(overall),
        weighted=config.profit_metric_weights is not None,
        weekly=tuple(weekly),
    )
