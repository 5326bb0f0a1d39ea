"""Pure order computations: pricing, totals, enrichment and page math.

Nothing here performs I/O. Catalog records are matched to items by exact
product id; when the catalog holds more than one record for an id the
first one wins.
"""

import math
from decimal import Decimal
from typing import Dict, Iterable, List, Sequence

from .domain import (
    CatalogRecord,
    EnrichedOrder,
    EnrichedOrderItem,
    Order,
    OrderItem,
    OrderTotals,
    PricedLine,
)

UNKNOWN_PRODUCT = "Unknown Product"
CENTS = Decimal("0.01")


def index_catalog(catalog: Iterable[CatalogRecord]) -> Dict[str, CatalogRecord]:
    """Map product id to its first catalog record."""
    index: Dict[str, CatalogRecord] = {}
    for record in catalog:
        index.setdefault(record.id, record)
    return index


def aggregate(items: Sequence[OrderItem], catalog: Iterable[CatalogRecord]) -> OrderTotals:
    """Price the requested items and compute the order totals.

    Catalog prices are rounded to cents before they are multiplied, so the
    total equals the sum of the stored line amounts. Items whose product is
    missing from the catalog are kept as unresolved lines priced at zero;
    deciding whether to reject them is up to the caller.

    Args:
        items: Requested items, in request order.
        catalog: Records returned by the catalog for those items.

    Returns:
        OrderTotals with one PricedLine per requested item.
    """
    index = index_catalog(catalog)
    lines: List[PricedLine] = []
    total_amount = Decimal("0")
    total_items = 0

    for item in items:
        record = index.get(item.product_id)
        price = record.price.quantize(CENTS) if record is not None else Decimal("0")
        lines.append(PricedLine(item.product_id, item.quantity, price, resolved=record is not None))
        total_amount += price * item.quantity
        total_items += item.quantity

    return OrderTotals(total_amount=total_amount, total_items=total_items, lines=lines)


def enrich(items: Sequence[OrderItem], catalog: Iterable[CatalogRecord]) -> List[EnrichedOrderItem]:
    """Attach product names to items, keeping their order and count."""
    index = index_catalog(catalog)
    enriched = []
    for item in items:
        record = index.get(item.product_id)
        enriched.append(
            EnrichedOrderItem(
                product_id=item.product_id,
                quantity=item.quantity,
                price=item.price,
                name=record.name if record is not None else UNKNOWN_PRODUCT,
            )
        )
    return enriched


def enrich_order(order: Order, catalog: Iterable[CatalogRecord]) -> EnrichedOrder:
    return EnrichedOrder(
        id=order.id,
        status=order.status,
        total_amount=order.total_amount,
        total_items=order.total_items,
        items=enrich(order.items, catalog),
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def last_page(total: int, limit: int) -> int:
    """Number of the last page for ``total`` rows split in pages of ``limit``."""
    if limit <= 0:
        raise ValueError("limit must be positive")
    return math.ceil(total / limit)
