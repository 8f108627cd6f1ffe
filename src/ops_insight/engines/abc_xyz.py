"""
ABC-XYZ Classifier.

ABC ranks items by purchase spend (Pareto on cumulative share); XYZ ranks
them by the coefficient of variation of weekly demand. The combined label
(e.g. "AX") drives the inventory strategy.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from ops_insight.aggregation.numeric import round_half_up, safe_div
from ops_insight.config.business import BusinessConfig
from ops_insight.engines.demand import DemandStats
from ops_insight.errors import InvalidConfiguration

logger = logging.getLogger(__name__)

ABC_CLASSES = ("A", "B", "C")
XYZ_CLASSES = ("X", "Y", "Z")

# Absorbs float error when a cumulative share lands exactly on a threshold
_BOUNDARY_EPS = 1e-9


@dataclass(frozen=True)
class AbcXyzItem:
    product_code: str
    product_name: str
    total_spend: float
    spend_share: float  # %
    cumulative_share: float  # %
    cv: float | None
    abc_class: str
    xyz_class: str

    @property
    def label(self) -> str:
        return self.abc_class + self.xyz_class


@dataclass(frozen=True)
class AbcXyzInsight:
    items: tuple[AbcXyzItem, ...]
    matrix: Mapping[str, int]  # all nine "AX".."CZ" keys
    abc_counts: Mapping[str, int]
    xyz_counts: Mapping[str, int]
    total_items: int
    total_spend: float

    def class_of(self, product_code: str) -> str | None:
        for item in self.items:
            if item.product_code == product_code:
                return item.abc_class
        return None


def abc_class(cumulative_pct: float, spend: float, config: BusinessConfig) -> str:
    if spend <= 0:
        return "C"
    if cumulative_pct <= config.abc_class_a_threshold + _BOUNDARY_EPS:
        return "A"
    if cumulative_pct <= config.abc_class_b_threshold + _BOUNDARY_EPS:
        return "B"
    return "C"


def xyz_class(cv: float | None, config: BusinessConfig) -> str:
    """Undefined variability (too few observations) is treated as maximal: Z."""
    if cv is None:
        return "Z"
    if cv <= config.xyz_class_x_threshold:
        return "X"
    if cv <= config.xyz_class_y_threshold:
        return "Y"
    return "Z"


def classify_abc_xyz(
    demand: Mapping[str, DemandStats], config: BusinessConfig
) -> AbcXyzInsight:
    if not config.abc_class_a_threshold <= config.abc_class_b_threshold:
        raise InvalidConfiguration("abc_class_a_threshold exceeds abc_class_b_threshold")
    if not config.xyz_class_x_threshold <= config.xyz_class_y_threshold:
        raise InvalidConfiguration("xyz_class_x_threshold exceeds xyz_class_y_threshold")

    ranked = sorted(demand.values(), key=lambda s: (-s.total_spend, s.product_code))
    grand_total = sum(max(s.total_spend, 0.0) for s in ranked)

    items: list[AbcXyzItem] = []
    cumulative = 0.0
    for stats in ranked:
        spend = max(stats.total_spend, 0.0)
        cumulative += spend
        cum_pct = safe_div(cumulative * 100.0, grand_total)
        cv = stats.weekly_cv if stats.purchase_events > 1 else None
        items.append(
            AbcXyzItem(
                product_code=stats.product_code,
                product_name=stats.product_name,
                total_spend=stats.total_spend,
                spend_share=round_half_up(safe_div(spend * 100.0, grand_total), 1),
                cumulative_share=round_half_up(cum_pct, 1),
                cv=None if cv is None else round_half_up(cv, 3),
                abc_class=abc_class(cum_pct, spend if grand_total > 0 else 0.0, config),
                xyz_class=xyz_class(cv, config),
            )
        )

    matrix = {a + x: 0 for a in ABC_CLASSES for x in XYZ_CLASSES}
    abc_counts = dict.fromkeys(ABC_CLASSES, 0)
    xyz_counts = dict.fromkeys(XYZ_CLASSES, 0)
    for item in items:
        matrix[item.label] += 1
        abc_counts[item.abc_class] += 1
        xyz_counts[item.xyz_class] += 1

    logger.debug("ABC-XYZ: %d items, matrix=%s", len(items), matrix)

    return AbcXyzInsight(
        items=tuple(items),
        matrix=MappingProxyType(matrix),
        abc_counts=MappingProxyType(abc_counts),
        xyz_counts=MappingProxyType(xyz_counts),
        total_items=len(items),
        total_spend=grand_total,
    )
