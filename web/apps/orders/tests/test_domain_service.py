"""Unit tests for the OrderService workflow.

These tests drive the service with stubbed ports: an in-memory store that
records its writes and catalog stubs that answer, fail or change between
calls.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from apps.orders.adapters import CatalogStub
from apps.orders.domain import (
    InvalidRequest,
    NotFound,
    Order,
    OrderItem,
    OrderStatus,
    RemoteCatalogError,
    RemoteDependencyFailure,
)
from apps.orders.service import OrderService


class InMemoryStore:
    """Order store stub keeping orders in a dict and counting writes."""

    def __init__(self, fail_on_create=False):
        self.orders = {}
        self.writes = 0
        self.fail_on_create = fail_on_create

    def create(self, total_amount, total_items, lines):
        self.writes += 1
        if self.fail_on_create:
            raise RuntimeError("database is locked")
        order = Order(
            id=uuid4(),
            total_amount=total_amount,
            total_items=total_items,
            items=[OrderItem(l.product_id, l.quantity, l.price) for l in lines],
        )
        self.orders[order.id] = order
        return order

    def get(self, order_id):
        return self.orders.get(order_id)

    def count(self, status=None):
        return len(self._filtered(status))

    def find_page(self, status, skip, take):
        return self._filtered(status)[skip:skip + take]

    def _filtered(self, status):
        return [o for o in self.orders.values() if status is None or o.status == status]


class FailingCatalog:
    """Catalog stub whose every call fails like a timed-out RPC."""

    def __init__(self):
        self.calls = 0

    def resolve(self, product_ids):
        self.calls += 1
        raise RemoteCatalogError("Request timed out")


def test_create_prices_and_names_items():
    """Happy path: one Widget line of 2 units at 10."""
    catalog = CatalogStub({"A": ("Widget", "10")})
    service = OrderService(catalog, InMemoryStore())
    out = service.create([OrderItem("A", 2)])
    assert out.total_amount == Decimal("20")
    assert out.total_items == 2
    assert out.status == OrderStatus.PENDING
    assert len(out.items) == 1
    line = out.items[0]
    assert (line.product_id, line.quantity, line.price, line.name) == ("A", 2, Decimal("10"), "Widget")


def test_create_calls_catalog_once_with_distinct_ids():
    catalog = CatalogStub({"A": ("Widget", "10"), "B": ("Gadget", "1")})
    store = InMemoryStore()
    service = OrderService(catalog, store)
    out = service.create([OrderItem("A", 1), OrderItem("B", 1), OrderItem("A", 3)])
    assert catalog.calls == [["A", "B"]]
    assert store.writes == 1
    assert out.total_amount == Decimal("41")
    assert [i.product_id for i in out.items] == ["A", "B", "A"]


def test_create_does_not_write_when_catalog_fails():
    """A failed RPC aborts the request before anything is stored."""
    store = InMemoryStore()
    service = OrderService(FailingCatalog(), store)
    with pytest.raises(InvalidRequest) as e:
        service.create([OrderItem("A", 1)])
    assert e.value.message == "Request timed out"
    assert store.writes == 0


def test_create_store_failure_is_invalid_request():
    service = OrderService(CatalogStub({"A": ("Widget", "10")}), InMemoryStore(fail_on_create=True))
    with pytest.raises(InvalidRequest) as e:
        service.create([OrderItem("A", 1)])
    assert str(e.value) == "database is locked"


def test_create_with_unknown_product_defaults_to_zero_price():
    service = OrderService(CatalogStub({"A": ("Widget", "10")}), InMemoryStore())
    out = service.create([OrderItem("A", 1), OrderItem("GHOST", 2)])
    assert out.total_amount == Decimal("10")
    assert out.total_items == 3
    assert out.items[1].price == Decimal("0")
    assert out.items[1].name == "Unknown Product"


def test_create_rejects_unknown_products_when_configured():
    store = InMemoryStore()
    service = OrderService(CatalogStub({"A": ("Widget", "10")}), store, reject_unresolved=True)
    with pytest.raises(InvalidRequest) as e:
        service.create([OrderItem("A", 1), OrderItem("GHOST", 2)])
    assert "GHOST" in e.value.message
    assert store.writes == 0


def test_create_empty_order_is_invalid_request():
    store = InMemoryStore()
    service = OrderService(CatalogStub(), store)
    with pytest.raises(InvalidRequest):
        service.create([])
    assert store.writes == 0


def test_find_one_not_found_mentions_id():
    service = OrderService(CatalogStub(), InMemoryStore())
    oid = uuid4()
    with pytest.raises(NotFound) as e:
        service.find_one(oid)
    assert str(oid) in e.value.message


def test_find_one_resolves_names_again_but_keeps_money():
    catalog = CatalogStub({"A": ("Widget", "10")})
    service = OrderService(catalog, InMemoryStore())
    created = service.create([OrderItem("A", 2)])

    # Catalog renames and reprices the product after the order was placed
    catalog.products["A"] = ("Widget v2", Decimal("99"))
    first = service.find_one(created.id)
    second = service.find_one(created.id)

    assert len(catalog.calls) == 3
    assert first.total_amount == second.total_amount == Decimal("20")
    assert first.total_items == second.total_items == 2
    assert first.items[0].price == Decimal("10")
    assert first.items[0].name == "Widget v2"


def test_find_one_without_items_skips_catalog():
    store = InMemoryStore()
    order = Order(id=uuid4(), total_amount=Decimal("0"), total_items=0, items=[])
    store.orders[order.id] = order
    catalog = FailingCatalog()

    out = OrderService(catalog, store).find_one(order.id)
    assert out.id == order.id
    assert out.items == []
    assert catalog.calls == 0


def test_find_one_catalog_failure_is_remote_dependency_failure():
    store = InMemoryStore()
    created = OrderService(CatalogStub({"A": ("Widget", "10")}), store).create([OrderItem("A", 1)])
    service = OrderService(FailingCatalog(), store)
    with pytest.raises(RemoteDependencyFailure):
        service.find_one(created.id)


def test_find_all_pagination_meta():
    store = InMemoryStore()
    service = OrderService(CatalogStub({"A": ("Widget", "10")}), store)
    for _ in range(25):
        service.create([OrderItem("A", 1)])

    page3 = service.find_all(None, page=3, limit=10)
    assert (page3.total, page3.page, page3.last_page) == (25, 3, 3)
    assert len(page3.data) == 5

    page4 = service.find_all(None, page=4, limit=10)
    assert page4.data == []
    assert (page4.total, page4.last_page) == (25, 3)


def test_find_all_filters_by_status():
    store = InMemoryStore()
    service = OrderService(CatalogStub({"A": ("Widget", "10")}), store)
    service.create([OrderItem("A", 1)])
    page = service.find_all(OrderStatus.DELIVERED, page=1, limit=10)
    assert page.total == 0 and page.data == [] and page.last_page == 0


def test_change_status_writes_nothing():
    store = InMemoryStore()
    service = OrderService(CatalogStub(), store)
    assert service.change_status(uuid4(), OrderStatus.PAID) is None
    assert store.writes == 0
