"""Record builders shared by the test modules."""

from datetime import date, timedelta

from ops_insight.records.core import PurchaseRecord

START = date(2024, 1, 1)  # a Monday


def day(offset: int) -> date:
    return START + timedelta(days=offset)


def purchase(offset, code, qty, price, name=None, total=None) -> PurchaseRecord:
    return PurchaseRecord(
        date=day(offset),
        product_code=code,
        product_name=name or code,
        quantity=qty,
        unit_price=price,
        total=qty * price if total is None else total,
    )
