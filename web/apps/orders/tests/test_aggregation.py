"""Unit tests for the pure order computations."""

from decimal import Decimal
from uuid import uuid4

import pytest

from apps.orders.aggregation import UNKNOWN_PRODUCT, aggregate, enrich, enrich_order, last_page
from apps.orders.domain import CatalogRecord, Order, OrderItem, OrderStatus

CATALOG = [
    CatalogRecord(id="A", name="Widget", price=Decimal("10")),
    CatalogRecord(id="B", name="Gadget", price=Decimal("2.50")),
]


def test_aggregate_sums_price_times_quantity():
    items = [OrderItem("A", 2), OrderItem("B", 3), OrderItem("A", 1)]
    totals = aggregate(items, CATALOG)
    assert totals.total_amount == Decimal("37.50")
    assert totals.total_items == 6
    assert [(l.product_id, l.quantity, l.price) for l in totals.lines] == [
        ("A", 2, Decimal("10")),
        ("B", 3, Decimal("2.50")),
        ("A", 1, Decimal("10")),
    ]
    assert totals.unresolved == []


def test_aggregate_prices_unknown_product_at_zero():
    totals = aggregate([OrderItem("A", 1), OrderItem("ZZZ", 4)], CATALOG)
    assert totals.total_amount == Decimal("10")
    assert totals.total_items == 5
    missing = totals.lines[1]
    assert missing.price == Decimal("0")
    assert missing.resolved is False
    assert totals.unresolved == ["ZZZ"]


def test_aggregate_rounds_catalog_price_before_multiplying():
    totals = aggregate([OrderItem("A", 1000)], [CatalogRecord(id="A", name="Widget", price=Decimal("0.125"))])
    assert totals.lines[0].price == Decimal("0.12")
    assert totals.total_amount == Decimal("120.00")
    assert totals.total_amount == sum(l.price * l.quantity for l in totals.lines)


def test_aggregate_empty_items():
    totals = aggregate([], CATALOG)
    assert totals.total_amount == Decimal("0")
    assert totals.total_items == 0
    assert totals.lines == []


def test_first_catalog_record_wins_on_duplicate_ids():
    catalog = [
        CatalogRecord(id="A", name="First", price=Decimal("1")),
        CatalogRecord(id="A", name="Second", price=Decimal("99")),
    ]
    assert aggregate([OrderItem("A", 2)], catalog).total_amount == Decimal("2")
    assert enrich([OrderItem("A", 2, Decimal("1"))], catalog)[0].name == "First"


def test_enrich_keeps_order_and_length_and_names_unknown():
    items = [OrderItem("B", 1, Decimal("2.50")), OrderItem("X", 2, Decimal("0")), OrderItem("A", 3, Decimal("10"))]
    out = enrich(items, CATALOG)
    assert [i.product_id for i in out] == ["B", "X", "A"]
    assert [i.name for i in out] == ["Gadget", UNKNOWN_PRODUCT, "Widget"]
    # the stored price is kept, not the catalog's
    assert enrich([OrderItem("A", 1, Decimal("7"))], CATALOG)[0].price == Decimal("7")


def test_enrich_order_copies_totals():
    order = Order(id=uuid4(), total_amount=Decimal("20.00"), total_items=2, items=[OrderItem("A", 2, Decimal("10"))])
    out = enrich_order(order, CATALOG)
    assert out.id == order.id
    assert out.status == OrderStatus.PENDING
    assert out.total_amount == Decimal("20.00")
    assert out.items[0].name == "Widget"


@pytest.mark.parametrize("total,limit,expected", [(25, 10, 3), (20, 10, 2), (0, 10, 0), (1, 1, 1)])
def test_last_page(total, limit, expected):
    assert last_page(total, limit) == expected


def test_last_page_rejects_non_positive_limit():
    with pytest.raises(ValueError):
        last_page(10, 0)
