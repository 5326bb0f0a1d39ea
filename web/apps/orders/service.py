"""Order service: the workflow behind create, read, list and status change.

The service is wired with a ``CatalogPort`` and an ``OrderStorePort`` (see
``providers.get_order_service``) and keeps no state between calls. It
converts failures into the domain errors the HTTP layer maps to status
codes.
"""

import logging
from typing import List, Optional
from uuid import UUID

from .aggregation import aggregate, enrich_order, last_page
from .domain import (
    CatalogPort,
    CatalogRecord,
    EnrichedOrder,
    InvalidRequest,
    NotFound,
    OrderItem,
    OrderPage,
    OrderStatus,
    OrderStorePort,
    RemoteCatalogError,
    RemoteDependencyFailure,
)

logger = logging.getLogger("orders")


class OrderService:
    """Domain service responsible for creating and reading orders.

    It validates product references against the catalog, computes the
    order totals, delegates persistence to the store and enriches the
    result with product names.
    """

    def __init__(self, catalog: CatalogPort, store: OrderStorePort, reject_unresolved: bool = False):
        """Initialize the service with required dependencies.

        Args:
            catalog: CatalogPort used to resolve product ids.
            store: OrderStorePort used to persist and load orders.
            reject_unresolved: When True, orders referencing products the
                catalog does not know are rejected instead of being priced
                at zero.
        """
        self.catalog = catalog
        self.store = store
        self.reject_unresolved = reject_unresolved

    def create(self, items: List[OrderItem]) -> EnrichedOrder:
        """Create an order from the requested items.

        The catalog is called exactly once and the store is written at
        most once, only after the catalog answered. Any failure along the
        way is reported as InvalidRequest carrying the underlying message.

        Args:
            items: Requested items. Their ``price`` is ignored; prices come
                from the catalog.

        Returns:
            EnrichedOrder: The persisted order, items named from the same
            catalog reply used for pricing.

        Raises:
            InvalidRequest: If resolution, aggregation or persistence fails.
        """
        try:
            product_ids = list(dict.fromkeys(item.product_id for item in items))
            records = self.catalog.resolve(product_ids)

            totals = aggregate(items, records)
            if totals.unresolved:
                if self.reject_unresolved:
                    raise ValueError(f"Unknown products: {', '.join(totals.unresolved)}")
                logger.warning("pricing unresolved products at 0: %s", ", ".join(totals.unresolved))

            order = self.store.create(totals.total_amount, totals.total_items, totals.lines)
        except Exception as e:
            logger.info("order rejected: %s", e)
            raise InvalidRequest(str(e) or "Error validating products") from e

        logger.info("order %s created with %d items", order.id, order.total_items)
        return enrich_order(order, records)

    def find_one(self, order_id: UUID) -> EnrichedOrder:
        """Load an order and name its items from the current catalog.

        Monetary fields come from the store and never change; names are
        resolved again on every call.

        Raises:
            NotFound: If no order has the given id.
            RemoteDependencyFailure: If the catalog cannot be reached.
        """
        order = self.store.get(order_id)
        if order is None:
            raise NotFound(f"Order with id {order_id} not found")

        records: List[CatalogRecord] = []
        if order.items:
            try:
                records = self.catalog.resolve([item.product_id for item in order.items])
            except RemoteCatalogError as e:
                logger.warning("catalog unavailable while reading order %s: %s", order_id, e)
                raise RemoteDependencyFailure(str(e) or "Catalog unavailable") from e

        return enrich_order(order, records)

    def find_all(self, status: Optional[OrderStatus], page: int, limit: int) -> OrderPage:
        """Return one page of orders, newest first, without item names."""
        total = self.store.count(status)
        data = self.store.find_page(status, skip=(page - 1) * limit, take=limit)
        return OrderPage(data=data, total=total, page=page, last_page=last_page(total, limit))

    def change_status(self, order_id: UUID, status: OrderStatus) -> None:
        # Transitions are undefined until the status workflow is designed.
        logger.info("status change %s -> %s ignored", order_id, status.value)
        return None
