"""Repository layer for persisting orders.

This module implements ``OrderStorePort`` on top of the Django ORM. It
maps model instances to the domain dataclasses so the service layer is
not coupled to ORM types.
"""

from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from django.db import transaction

from .aggregation import CENTS
from .domain import Order, OrderItem, OrderStatus, PricedLine
from .models import OrderItemModel, OrderModel


def _money(value) -> Decimal:
    return Decimal(value).quantize(CENTS)


def _to_domain(obj: OrderModel, items: List[OrderItem]) -> Order:
    return Order(
        id=obj.id,
        status=OrderStatus(obj.status),
        total_amount=_money(obj.total_amount),
        total_items=obj.total_items,
        items=items,
        created_at=obj.created_at,
        updated_at=obj.updated_at,
    )


class OrderRepository:
    """Repository that persists Order domain objects using Django ORM."""

    def create(self, total_amount: Decimal, total_items: int, lines: List[PricedLine]) -> Order:
        """Persist a new order and its line items in one transaction.

        Either the order and all of its items are stored, or nothing is.

        Args:
            total_amount: Order total computed from the priced lines.
            total_items: Sum of line quantities.
            lines: Priced lines, stored in the given order.

        Returns:
            Order: The persisted order with its items.
        """
        with transaction.atomic():
            obj = OrderModel.objects.create(
                status=OrderStatus.PENDING.value,
                total_amount=_money(total_amount),
                total_items=total_items,
            )
            OrderItemModel.objects.bulk_create(
                [
                    OrderItemModel(
                        order=obj,
                        product_id=line.product_id,
                        quantity=line.quantity,
                        price=_money(line.price),
                    )
                    for line in lines
                ]
            )

        items = [OrderItem(line.product_id, line.quantity, _money(line.price)) for line in lines]
        return _to_domain(obj, items)

    def get(self, order_id: UUID) -> Optional[Order]:
        obj = OrderModel.objects.filter(id=order_id).prefetch_related("items").first()
        if obj is None:
            return None
        items = [OrderItem(it.product_id, it.quantity, _money(it.price)) for it in obj.items.all()]
        return _to_domain(obj, items)

    def count(self, status: Optional[OrderStatus] = None) -> int:
        return self._filtered(status).count()

    def find_page(self, status: Optional[OrderStatus], skip: int, take: int) -> List[Order]:
        """Return ``take`` orders after skipping ``skip``, items not loaded."""
        qs = self._filtered(status).order_by("-created_at", "id")[skip:skip + take]
        return [_to_domain(obj, []) for obj in qs]

    @staticmethod
    def _filtered(status: Optional[OrderStatus]):
        qs = OrderModel.objects.all()
        if status is not None:
            qs = qs.filter(status=OrderStatus(status).value)
        return qs
