"""
BOM Consumption Anomaly Detector.

Compares what the recipes say should have been consumed against what was
actually bought, and flags materials whose quantity or unit price strays
beyond the configured tolerances.

The same comparison also yields a consumption variance per material, priced
against the material master (or the average purchase price when the master
has none):

    price variance = (actual avg price - standard price) * actual qty
    qty variance   = (actual qty - expected qty) * standard price
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from ops_insight.aggregation.numeric import round_half_up, safe_div
from ops_insight.config.business import BusinessConfig
from ops_insight.engines.material_prices import MaterialPriceInsight
from ops_insight.records.core import (
    BomLine,
    MaterialMasterItem,
    PurchaseRecord,
    SalesDetailRecord,
)

logger = logging.getLogger(__name__)


class AnomalyType(enum.Enum):
    OVERUSE = "overuse"
    UNDERUSE = "underuse"
    PRICE_DEVIATION = "price_deviation"


class Severity(enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class ProductConsumption:
    product_code: str
    product_name: str
    output_qty: float
    expected_qty: float


@dataclass(frozen=True)
class ExpectedConsumption:
    material_code: str
    material_name: str
    expected_qty: float
    contributing_products: tuple[str, ...]
    breakdown: tuple[ProductConsumption, ...] = ()


@dataclass(frozen=True)
class BomAnomalyItem:
    material_code: str
    material_name: str
    anomaly_type: AnomalyType
    severity: Severity
    expected_qty: float
    actual_qty: float
    deviation_pct: float
    actual_price: float
    reference_price: float
    price_deviation_pct: float
    cost_impact: float


@dataclass(frozen=True)
class BomAnomalySummary:
    overuse_count: int
    underuse_count: int
    price_deviation_count: int
    high_severity_count: int
    total_cost_impact: float
    analyzed_materials: int


@dataclass(frozen=True)
class BomAnomalyInsight:
    items: tuple[BomAnomalyItem, ...]
    summary: BomAnomalySummary
    top_overuse: tuple[BomAnomalyItem, ...]
    top_underuse: tuple[BomAnomalyItem, ...]
    top_price_deviation: tuple[BomAnomalyItem, ...]
    output_basis: str  # "sales" | "bom_batch"


def product_output(
    bom: Sequence[BomLine], sales_detail: Sequence[SalesDetailRecord]
) -> tuple[dict[str, float], str]:
    """
    Units produced per finished product.

    Sold quantity stands in for output when sales detail exists; otherwise
    each product is assumed to have run one BOM batch.
    """
    if sales_detail:
        sold: dict[str, float] = {}
        for s in sales_detail:
            code = s.product_code.strip()
            if code:
                sold[code] = sold.get(code, 0.0) + s.quantity
        return sold, "sales"
    batches: dict[str, float] = {}
    for line in bom:
        if line.product_code and line.production_qty > 0:
            batches.setdefault(line.product_code, line.production_qty)
    return batches, "bom_batch"


def expected_consumption(
    bom: Sequence[BomLine], output: Mapping[str, float]
) -> dict[str, ExpectedConsumption]:
    """Recipe-implied use of each material, with the share of each product."""
    totals: dict[str, float] = {}
    names: dict[str, str] = {}
    shares: dict[str, dict[str, ProductConsumption]] = {}
    for line in bom:
        if not line.material_code or line.production_qty <= 0:
            continue
        produced = output.get(line.product_code, 0.0)
        if produced <= 0:
            continue
        qty = produced * line.consumption_qty / line.production_qty
        totals[line.material_code] = totals.get(line.material_code, 0.0) + qty
        names.setdefault(line.material_code, line.material_name or line.material_code)
        by_product = shares.setdefault(line.material_code, {})
        prior = by_product.get(line.product_code)
        by_product[line.product_code] = ProductConsumption(
            product_code=line.product_code,
            product_name=line.product_name or line.product_code,
            output_qty=produced,
            expected_qty=qty + (prior.expected_qty if prior is not None else 0.0),
        )
    return {
        code: ExpectedConsumption(
            code,
            names[code],
            qty,
            tuple(shares[code]),
            tuple(shares[code].values()),
        )
        for code, qty in totals.items()
    }


def master_price_lookup(material_master: Sequence[MaterialMasterItem]) -> dict[str, float]:
    """Standard unit price per material code; non-positive prices are ignored."""
    return {
        m.material_code.strip(): m.unit_price
        for m in material_master
        if m.material_code.strip() and m.unit_price > 0
    }


def severity_for(magnitude_pct: float, config: BusinessConfig) -> Severity:
    if magnitude_pct >= config.anomaly_severity_high_pct:
        return Severity.HIGH
    if magnitude_pct >= config.anomaly_severity_medium_pct:
        return Severity.MEDIUM
    return Severity.LOW


def classify_anomaly(
    deviation_pct: float,
    price_deviation_pct: float,
    has_master_price: bool,
    config: BusinessConfig,
) -> AnomalyType | None:
    """Quantity deviations take precedence over price deviations."""
    tolerance = config.recipe_variance_tolerance
    if deviation_pct > tolerance:
        return AnomalyType.OVERUSE
    if deviation_pct < -tolerance:
        return AnomalyType.UNDERUSE
    if has_master_price and abs(price_deviation_pct) > config.price_increase_threshold:
        return AnomalyType.PRICE_DEVIATION
    return None


def detect_bom_anomalies(
    bom: Sequence[BomLine],
    purchases: Sequence[PurchaseRecord],
    material_prices: MaterialPriceInsight,
    config: BusinessConfig,
    sales_detail: Sequence[SalesDetailRecord] = (),
    material_master: Sequence[MaterialMasterItem] = (),
) -> BomAnomalyInsight:
    output, basis = product_output(bom, sales_detail)
    expected = expected_consumption(bom, output)

    master_prices = master_price_lookup(material_master)
    actual_qty: dict[str, float] = {}
    for p in purchases:
        if p.product_code:
            actual_qty[p.product_code] = actual_qty.get(p.product_code, 0.0) + p.quantity
    prices = material_prices.by_code()

    items: list[BomAnomalyItem] = []
    analyzed = 0
    for code, exp in sorted(expected.items()):
        if code not in actual_qty:
            continue
        analyzed += 1
        actual = actual_qty[code]
        price_stats = prices.get(code)
        actual_price = price_stats.avg_price if price_stats is not None else 0.0
        master = master_prices.get(code)
        reference_price = master if master is not None else actual_price

        deviation = safe_div((actual - exp.expected_qty) * 100.0, exp.expected_qty)
        price_deviation = (
            safe_div((actual_price - master) * 100.0, master) if master is not None else 0.0
        )
        kind = classify_anomaly(deviation, price_deviation, master is not None, config)
        if kind is None:
            continue

        if kind is AnomalyType.PRICE_DEVIATION:
            magnitude = abs(price_deviation)
            impact = (actual_price - reference_price) * actual
        else:
            magnitude = abs(deviation)
            impact = (actual - exp.expected_qty) * reference_price

        items.append(
            BomAnomalyItem(
                material_code=code,
                material_name=exp.material_name,
                anomaly_type=kind,
                severity=severity_for(magnitude, config),
                expected_qty=round_half_up(exp.expected_qty, 2),
                actual_qty=actual,
                deviation_pct=round_half_up(deviation, 1),
                actual_price=actual_price,
                reference_price=reference_price,
                price_deviation_pct=round_half_up(price_deviation, 1),
                cost_impact=round_half_up(impact),
            )
        )

    items.sort(key=lambda i: (-abs(i.cost_impact), i.material_code))

    def top(kind: AnomalyType) -> tuple[BomAnomalyItem, ...]:
        return tuple(i for i in items if i.anomaly_type is kind)[: config.anomaly_top_n]

    summary = BomAnomalySummary(
        overuse_count=sum(1 for i in items if i.anomaly_type is AnomalyType.OVERUSE),
        underuse_count=sum(1 for i in items if i.anomaly_type is AnomalyType.UNDERUSE),
        price_deviation_count=sum(
            1 for i in items if i.anomaly_type is AnomalyType.PRICE_DEVIATION
        ),
        high_severity_count=sum(1 for i in items if i.severity is Severity.HIGH),
        total_cost_impact=sum(i.cost_impact for i in items),
        analyzed_materials=analyzed,
    )

    logger.debug(
        "BOM anomalies: %d of %d materials flagged (basis=%s)",
        len(items),
        analyzed,
        basis,
    )

    return BomAnomalyInsight(
        items=tuple(items),
        summary=summary,
        top_overuse=top(AnomalyType.OVERUSE),
        top_underuse=top(AnomalyType.UNDERUSE),
        top_price_deviation=top(AnomalyType.PRICE_DEVIATION),
        output_basis=basis,
    )


# =============================================================================
# Consumption variance
# =============================================================================


@dataclass(frozen=True)
class ConsumptionVarianceItem:
    material_code: str
    material_name: str
    expected_qty: float
    actual_qty: float
    qty_diff: float
    qty_diff_pct: float
    standard_price: float
    actual_price: float
    price_diff_pct: float
    price_source: str  # "master" | "purchases"
    price_variance: float
    qty_variance: float
    total_variance: float
    breakdown: tuple[ProductConsumption, ...]

    @property
    def favorable(self) -> bool:
        return self.total_variance < 0


@dataclass(frozen=True)
class ConsumptionVarianceInsight:
    items: tuple[ConsumptionVarianceItem, ...]
    total_price_variance: float
    total_qty_variance: float
    total_variance: float
    favorable_count: int
    unfavorable_count: int
    analyzed_materials: int
    output_basis: str  # "sales" | "bom_batch"


def compute_consumption_variance(
    bom: Sequence[BomLine],
    purchases: Sequence[PurchaseRecord],
    sales_detail: Sequence[SalesDetailRecord] = (),
    material_master: Sequence[MaterialMasterItem] = (),
) -> ConsumptionVarianceInsight | None:
    """
    Split each material's gap between recipe-implied and purchased quantity
    into a price and a quantity variance.

    Returns None when no recipe output or no purchases exist to compare.
    """
    output, basis = product_output(bom, sales_detail)
    expected = expected_consumption(bom, output)
    if not expected or not purchases:
        logger.debug("Consumption variance: nothing to compare")
        return None

    master_prices = master_price_lookup(material_master)
    bought: dict[str, list[float]] = {}
    for p in purchases:
        code = p.product_code.strip()
        if not code:
            continue
        entry = bought.setdefault(code, [0.0, 0.0])
        entry[0] += p.quantity
        entry[1] += p.total

    items: list[ConsumptionVarianceItem] = []
    for code, exp in sorted(expected.items()):
        if code not in bought:
            continue
        actual_qty, spend = bought[code]
        actual_price = safe_div(spend, actual_qty)
        master = master_prices.get(code)
        standard_price = master if master is not None else actual_price

        qty_diff = actual_qty - exp.expected_qty
        price_var = round_half_up((actual_price - standard_price) * actual_qty)
        qty_var = round_half_up(qty_diff * standard_price)
        items.append(
            ConsumptionVarianceItem(
                material_code=code,
                material_name=exp.material_name,
                expected_qty=round_half_up(exp.expected_qty, 2),
                actual_qty=actual_qty,
                qty_diff=round_half_up(qty_diff, 2),
                qty_diff_pct=round_half_up(safe_div(qty_diff * 100.0, exp.expected_qty), 1),
                standard_price=round_half_up(standard_price, 2),
                actual_price=round_half_up(actual_price, 2),
                price_diff_pct=round_half_up(
                    safe_div((actual_price - standard_price) * 100.0, standard_price), 1
                ),
                price_source="master" if master is not None else "purchases",
                price_variance=price_var,
                qty_variance=qty_var,
                total_variance=price_var + qty_var,
                breakdown=tuple(
                    ProductConsumption(
                        product_code=share.product_code,
                        product_name=share.product_name,
                        output_qty=share.output_qty,
                        expected_qty=round_half_up(share.expected_qty, 2),
                    )
                    for share in exp.breakdown
                ),
            )
        )

    items.sort(key=lambda i: (-abs(i.total_variance), i.material_code))
    total_price = sum(i.price_variance for i in items)
    total_qty = sum(i.qty_variance for i in items)

    logger.debug(
        "Consumption variance: %d materials, price %.0f, qty %.0f (basis=%s)",
        len(items),
        total_price,
        total_qty,
        basis,
    )

    return ConsumptionVarianceInsight(
        items=tuple(items),
        total_price_variance=total_price,
        total_qty_variance=total_qty,
        total_variance=total_price + total_qty,
        favorable_count=sum(1 for i in items if i.total_variance < 0),
        unfavorable_count=sum(1 for i in items if i.total_variance > 0),
        analyzed_materials=len(items),
        output_basis=basis,
    )
