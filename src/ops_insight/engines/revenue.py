"""Sales-side insights: channel revenue, monthly revenue trend, product profit."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType

from ops_insight.aggregation.buckets import month_key
from ops_insight.aggregation.numeric import pct, round_half_up, safe_div
from ops_insight.config.business import BusinessConfig
from ops_insight.records.core import DailySalesRecord, PurchaseRecord, SalesDetailRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChannelShare:
    name: str
    revenue: float
    share: float  # %


@dataclass(frozen=True)
class DailyChannelRevenue:
    date: str
    channels: Mapping[str, float]
    total: float


@dataclass(frozen=True)
class ChannelRevenueInsight:
    channels: tuple[ChannelShare, ...]
    daily_trend: tuple[DailyChannelRevenue, ...]
    total_revenue: float


@dataclass(frozen=True)
class MonthlyRevenue:
    month: str
    revenue: float
    profit: float
    margin_rate: float  # %
    prev_month_change: float  # %
    days: int


@dataclass(frozen=True)
class RevenueTrendInsight:
    monthly: tuple[MonthlyRevenue, ...]


@dataclass(frozen=True)
class ProductProfitItem:
    product_code: str
    product_name: str
    revenue: float
    cost: float
    margin: float
    margin_rate: float  # %
    quantity: float


@dataclass(frozen=True)
class ProductProfitInsight:
    items: tuple[ProductProfitItem, ...]
    total_revenue: float
    total_cost: float
    total_margin: float


def compute_channel_revenue(daily_sales: Sequence[DailySalesRecord]) -> ChannelRevenueInsight:
    totals: dict[str, float] = {}
    trend = []
    for day in sorted(daily_sales, key=lambda d: d.date):
        for channel, amount in day.channel_revenue.items():
            totals[channel] = totals.get(channel, 0.0) + amount
        trend.append(
            DailyChannelRevenue(
                date=day.date.isoformat(),
                channels=MappingProxyType(dict(day.channel_revenue)),
                total=day.total_revenue,
            )
        )
    grand_total = sum(totals.values())
    channels = tuple(
        ChannelShare(name, revenue, pct(revenue, grand_total))
        for name, revenue in sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
    )
    return ChannelRevenueInsight(
        channels=channels, daily_trend=tuple(trend), total_revenue=grand_total
    )


def compute_revenue_trend(
    daily_sales: Sequence[DailySalesRecord], config: BusinessConfig
) -> RevenueTrendInsight:
    """Monthly revenue with profit estimated at ``default_margin_rate``."""
    months: dict[str, list[float]] = {}
    for day in daily_sales:
        entry = months.setdefault(month_key(day.date), [0.0, 0])
        entry[0] += day.total_revenue
        entry[1] += 1

    monthly: list[MonthlyRevenue] = []
    prev_revenue = None
    for month, (revenue, days) in sorted(months.items()):
        change = 0.0
        if prev_revenue is not None and prev_revenue > 0:
            change = round_half_up((revenue - prev_revenue) / prev_revenue * 100.0, 1)
        monthly.append(
            MonthlyRevenue(
                month=month,
                revenue=revenue,
                profit=round_half_up(revenue * config.default_margin_rate),
                margin_rate=round_half_up(config.default_margin_rate * 100.0),
                prev_month_change=change,
                days=int(days),
            )
        )
        prev_revenue = revenue
    return RevenueTrendInsight(monthly=tuple(monthly))


def compute_product_profit(
    sales_detail: Sequence[SalesDetailRecord], purchases: Sequence[PurchaseRecord]
) -> ProductProfitInsight:
    """Sales against purchase cost for products bought and sold under one code."""
    sold: dict[str, list[float]] = {}
    names: dict[str, str] = {}
    for s in sales_detail:
        entry = sold.setdefault(s.product_code, [0.0, 0.0])
        entry[0] += s.total
        entry[1] += s.quantity
        names.setdefault(s.product_code, s.product_name or s.product_code)

    cost_by_code: dict[str, float] = {}
    for p in purchases:
        cost_by_code[p.product_code] = cost_by_code.get(p.product_code, 0.0) + p.total

    items = []
    for code, (revenue, qty) in sold.items():
        cost = cost_by_code.get(code, 0.0)
        margin = revenue - cost
        items.append(
            ProductProfitItem(
                product_code=code,
                product_name=names[code],
                revenue=revenue,
                cost=cost,
                margin=margin,
                margin_rate=round_half_up(safe_div(margin * 100.0, revenue), 1),
                quantity=qty,
            )
        )
    items.sort(key=lambda i: (-i.revenue, i.product_code))

    total_revenue = sum(i.revenue for i in items)
    total_cost = sum(i.cost for i in items)
    logger.debug("Product profit: %d products", len(items))
    return ProductProfitInsight(
        items=tuple(items),
        total_revenue=total_revenue,
        total_cost=total_cost,
        total_margin=total_revenue - total_cost,
    )
