"""Per-material purchase price statistics."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

from ops_insight.aggregation.numeric import round_half_up, safe_div
from ops_insight.records.core import PurchaseRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PricePoint:
    date: date
    price: float


@dataclass(frozen=True)
class MaterialPriceItem:
    product_code: str
    product_name: str
    first_price: float
    current_price: float
    avg_price: float
    price_change: float
    change_rate: float  # % vs first observed price
    total_spent: float
    total_quantity: float
    purchase_events: int
    price_history: tuple[PricePoint, ...]


@dataclass(frozen=True)
class MaterialPriceInsight:
    items: tuple[MaterialPriceItem, ...]

    def by_code(self) -> dict[str, MaterialPriceItem]:
        return {item.product_code: item for item in self.items}


def compute_material_prices(purchases: Sequence[PurchaseRecord]) -> MaterialPriceInsight:
    """
    Summarise each purchased material's price path.

    Lines without a product code or with zero quantity carry no price
    information and are ignored. Average price is spend / quantity.
    """
    grouped: dict[str, list[PurchaseRecord]] = {}
    names: dict[str, str] = {}
    for p in purchases:
        if not p.product_code or p.quantity == 0:
            continue
        grouped.setdefault(p.product_code, []).append(p)
        names.setdefault(p.product_code, p.product_name)

    items = []
    for code, lines in grouped.items():
        # Stable sort keeps same-day lines in ledger order
        ordered = sorted(lines, key=lambda r: r.date)
        total_spent = sum(r.total for r in ordered)
        total_qty = sum(r.quantity for r in ordered)
        first_price = ordered[0].unit_price
        current_price = ordered[-1].unit_price
        change = current_price - first_price
        items.append(
            MaterialPriceItem(
                product_code=code,
                product_name=names[code],
                first_price=first_price,
                current_price=current_price,
                avg_price=round_half_up(safe_div(total_spent, total_qty), 2),
                price_change=change,
                change_rate=round_half_up(safe_div(change * 100.0, first_price), 1)
                if first_price > 0
                else 0.0,
                total_spent=total_spent,
                total_quantity=total_qty,
                purchase_events=len(ordered),
                price_history=tuple(PricePoint(r.date, r.unit_price) for r in ordered),
            )
        )

    items.sort(key=lambda i: (-abs(i.change_rate), i.product_code))
    logger.debug("Material prices: %d materials", len(items))
    return MaterialPriceInsight(items=tuple(items))
