"""
Freshness & Risk Scorer.

Each inventory item gets a 0-100 score blended from three sub-scores:

- recency:   100 on the day of the last purchase, falling linearly to 0 at
             ``freshness_staleness_days``
- turnover:  turnover rate relative to ``freshness_turnover_target``
- stability: 100 for perfectly steady weekly demand rates, 0 at
             ``freshness_cv_ceiling``
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from types import MappingProxyType

from ops_insight.aggregation.numeric import (
    clamp,
    days_of_cover,
    round_half_up,
    safe_div,
)
from ops_insight.config.business import FRESHNESS_COMPONENTS, BusinessConfig
from ops_insight.engines.demand import DemandStats
from ops_insight.errors import InvalidConfiguration
from ops_insight.records.core import InventorySafetyItem

logger = logging.getLogger(__name__)

LOWEST_GRADE = "danger"


@dataclass(frozen=True)
class FreshnessItem:
    sku: str
    name: str
    current_stock: float
    turnover_rate: float
    days_since_purchase: int | None
    recency_score: float
    turnover_score: float
    stability_score: float
    score: float
    grade: str
    avg_daily_consumption: float
    estimated_days_left: float


@dataclass(frozen=True)
class FreshnessInsight:
    items: tuple[FreshnessItem, ...]
    grade_counts: Mapping[str, int]
    average_score: float
    reference_date: date | None
    low_turnover: tuple[str, ...] = ()  # stocked skus below low_turnover_threshold, slowest first


def recency_score(days_since: int | None, staleness_days: float) -> float:
    if days_since is None:
        return 0.0
    return clamp((1.0 - days_since / staleness_days) * 100.0, 0.0, 100.0)


def turnover_score(turnover_rate: float, target: float) -> float:
    return clamp(min(safe_div(turnover_rate, target), 1.0) * 100.0, 0.0, 100.0)


def stability_score(cv: float | None, ceiling: float) -> float:
    if cv is None:
        return 0.0
    return max(0.0, 1.0 - cv / ceiling) * 100.0


def grade_for(score: float, bands: Sequence[tuple[str, float]]) -> str:
    for grade, minimum in bands:
        if score >= minimum:
            return grade
    return LOWEST_GRADE


def _match_demand(
    item: InventorySafetyItem,
    demand: Mapping[str, DemandStats],
    by_name: Mapping[str, DemandStats],
) -> DemandStats | None:
    stats = demand.get(item.sku)
    if stats is None and item.name:
        stats = by_name.get(item.name)
    return stats


def compute_freshness(
    inventory: Sequence[InventorySafetyItem],
    demand: Mapping[str, DemandStats],
    config: BusinessConfig,
    reference_date: date | None = None,
) -> FreshnessInsight:
    if config.freshness_staleness_days <= 0:
        raise InvalidConfiguration("freshness_staleness_days must be positive")
    weights = {k: float(config.freshness_weights.get(k, 0.0)) for k in FRESHNESS_COMPONENTS}
    weight_sum = sum(weights.values())
    if weight_sum <= 0:
        raise InvalidConfiguration("freshness_weights must have a positive sum")

    if reference_date is None and demand:
        reference_date = max(s.last_purchase for s in demand.values())
    by_name = {s.product_name: s for s in demand.values() if s.product_name}

    items: list[FreshnessItem] = []
    for inv in inventory:
        stats = _match_demand(inv, demand, by_name)
        days_since = None
        if stats is not None and reference_date is not None:
            days_since = max((reference_date - stats.last_purchase).days, 0)
        mean_daily = stats.mean_daily if stats is not None else 0.0

        recency = recency_score(days_since, config.freshness_staleness_days)
        turnover = turnover_score(inv.turnover_rate, config.freshness_turnover_target)
        stability = stability_score(
            stats.weekly_cv if stats is not None else None, config.freshness_cv_ceiling
        )
        blended = (
            weights["recency"] * recency
            + weights["turnover"] * turnover
            + weights["stability"] * stability
        ) / weight_sum
        score = clamp(round_half_up(blended), 0.0, 100.0)

        items.append(
            FreshnessItem(
                sku=inv.sku,
                name=inv.display_name,
                current_stock=inv.current_stock,
                turnover_rate=inv.turnover_rate,
                days_since_purchase=days_since,
                recency_score=round_half_up(recency, 1),
                turnover_score=round_half_up(turnover, 1),
                stability_score=round_half_up(stability, 1),
                score=score,
                grade=grade_for(score, config.freshness_grade_bands),
                avg_daily_consumption=round_half_up(mean_daily, 2),
                estimated_days_left=days_of_cover(inv.current_stock, mean_daily),
            )
        )

    items.sort(key=lambda i: (i.score, i.sku))

    grade_counts = {grade: 0 for grade, _ in config.freshness_grade_bands}
    grade_counts[LOWEST_GRADE] = 0
    for item in items:
        grade_counts[item.grade] += 1

    average = round_half_up(safe_div(sum(i.score for i in items), len(items)), 1)
    slow = sorted(
        (
            i
            for i in items
            if i.turnover_rate < config.low_turnover_threshold and i.current_stock > 0
        ),
        key=lambda i: (i.turnover_rate, i.sku),
    )
    logger.debug(
        "Freshness: %d items, average score %.1f, %d low turnover",
        len(items),
        average,
        len(slow),
    )

    return FreshnessInsight(
        items=tuple(items),
        grade_counts=MappingProxyType(grade_counts),
        average_score=average,
        reference_date=reference_date,
        low_turnover=tuple(i.sku for i in slow),
    )
