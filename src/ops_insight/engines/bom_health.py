"""BOM coverage of sold products and an overall recipe-data health score."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ops_insight.aggregation.numeric import round_half_up, safe_div
from ops_insight.engines.bom_anomaly import BomAnomalyInsight
from ops_insight.engines.bom_variance import BomVarianceInsight
from ops_insight.records.core import BomLine, PurchaseRecord, SalesDetailRecord

logger = logging.getLogger(__name__)

# Average quantity deviation (%) at which the variance score reaches 0
VARIANCE_SCORE_FLOOR_PCT = 30.0
# High-severity share of anomalies at which the anomaly score reaches 0
ANOMALY_SCORE_FLOOR_RATIO = 0.5

HEALTH_WEIGHTS = {"data_quality": 0.2, "coverage": 0.3, "variance": 0.3, "anomaly": 0.2}


@dataclass(frozen=True)
class CoveredProduct:
    code: str
    name: str
    material_count: int


@dataclass(frozen=True)
class CodeName:
    code: str
    name: str


@dataclass(frozen=True)
class BomCoverage:
    covered_products: tuple[CoveredProduct, ...]
    uncovered_products: tuple[CodeName, ...]
    orphan_materials: tuple[CodeName, ...]  # purchased but in no recipe
    total_products: int
    total_covered: int
    completeness: float  # %


@dataclass(frozen=True)
class BomHealthScore:
    overall: float
    data_quality: float
    coverage: float
    variance: float
    anomaly: float


@dataclass(frozen=True)
class BomHealthInsight:
    coverage: BomCoverage
    health: BomHealthScore


def compute_bom_coverage(
    bom: Sequence[BomLine],
    sales_detail: Sequence[SalesDetailRecord],
    purchases: Sequence[PurchaseRecord],
) -> BomCoverage:
    sold: dict[str, str] = {}
    for s in sales_detail:
        code = s.product_code.strip()
        if code:
            sold.setdefault(code, s.product_name or code)

    recipe_materials: dict[str, set[str]] = {}
    bom_materials: set[str] = set()
    for line in bom:
        if line.material_code:
            bom_materials.add(line.material_code)
            if line.product_code:
                recipe_materials.setdefault(line.product_code, set()).add(line.material_code)

    covered: list[CoveredProduct] = []
    uncovered: list[CodeName] = []
    for code, name in sold.items():
        materials = recipe_materials.get(code)
        if materials:
            covered.append(CoveredProduct(code, name, len(materials)))
        else:
            uncovered.append(CodeName(code, name))
    covered.sort(key=lambda c: (-c.material_count, c.code))

    orphans: dict[str, str] = {}
    for p in purchases:
        if p.product_code and p.product_code not in bom_materials:
            orphans.setdefault(p.product_code, p.product_name or p.product_code)

    return BomCoverage(
        covered_products=tuple(covered),
        uncovered_products=tuple(uncovered),
        orphan_materials=tuple(CodeName(c, n) for c, n in orphans.items()),
        total_products=len(sold),
        total_covered=len(covered),
        completeness=round_half_up(safe_div(len(covered) * 100.0, len(sold))),
    )


def data_quality_score(bom: Sequence[BomLine]) -> float:
    valid = sum(
        1
        for line in bom
        if line.product_code
        and line.material_code
        and line.production_qty > 0
        and line.consumption_qty > 0
    )
    return round_half_up(safe_div(valid * 100.0, len(bom)))


def variance_score(variance: BomVarianceInsight | None) -> float:
    if variance is None or not variance.items:
        return 100.0
    deviations = [
        abs(safe_div(i.actual_qty - i.standard_qty, i.standard_qty or 1.0)) * 100.0
        for i in variance.items
    ]
    avg = sum(deviations) / len(deviations)
    return max(0.0, round_half_up(100.0 - avg / VARIANCE_SCORE_FLOOR_PCT * 100.0))


def anomaly_score(anomalies: BomAnomalyInsight | None) -> float:
    if anomalies is None or not anomalies.items:
        return 100.0
    ratio = anomalies.summary.high_severity_count / len(anomalies.items)
    return max(0.0, round_half_up(100.0 - ratio / ANOMALY_SCORE_FLOOR_RATIO * 100.0))


def compute_bom_health(
    bom: Sequence[BomLine],
    sales_detail: Sequence[SalesDetailRecord],
    purchases: Sequence[PurchaseRecord],
    variance: BomVarianceInsight | None = None,
    anomalies: BomAnomalyInsight | None = None,
) -> BomHealthInsight:
    coverage = compute_bom_coverage(bom, sales_detail, purchases)
    parts = {
        "data_quality": data_quality_score(bom),
        "coverage": coverage.completeness,
        "variance": variance_score(variance),
        "anomaly": anomaly_score(anomalies),
    }
    overall = round_half_up(sum(HEALTH_WEIGHTS[k] * v for k, v in parts.items()))
    logger.debug("BOM health: overall %.0f %s", overall, parts)
    return BomHealthInsight(
        coverage=coverage,
        health=BomHealthScore(overall=overall, **parts),
    )
