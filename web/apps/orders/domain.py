"""Domain models, ports and errors for orders.

This module contains the dataclasses used as DTOs for orders and catalog
records, protocol definitions (ports) for the external dependencies (the
remote product catalog and the order store) and the errors surfaced by
the order service.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Optional, Protocol
from uuid import UUID


# ---- Enums ----
class OrderStatus(str, Enum):
    """Enumeration of the possible order statuses.

    Only PENDING is assigned by this service; the others belong to the
    status workflow owned by downstream processes."""

    PENDING = "PENDING"
    PAID = "PAID"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


# ---- Entities / DTOs ----
@dataclass(frozen=True)
class OrderItem:
    """A single line item in an order.

    Attributes:
        product_id: Opaque reference to a product owned by the catalog.
        quantity: Number of units requested for this product.
        price: Unit price copied from the catalog when the order was
            created. It is a historical fact and is never re-fetched.
    """

    product_id: str
    quantity: int
    price: Decimal = Decimal("0")


@dataclass
class Order:
    """Container for persisted order data.

    Attributes:
        id: Persistent identifier for the order.
        status: Current OrderStatus.
        total_amount: Sum of price * quantity over the items.
        total_items: Sum of quantities over the items.
        items: OrderItem list in creation order. Empty when the order was
            loaded without its items (list views).
    """

    id: UUID
    status: OrderStatus = OrderStatus.PENDING
    total_amount: Decimal = Decimal("0")
    total_items: int = 0
    items: List[OrderItem] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class CatalogRecord:
    """Product data returned by the remote catalog for a single request."""

    id: str
    name: str
    price: Decimal


@dataclass(frozen=True)
class PricedLine:
    """A requested item priced against the catalog.

    Attributes:
        product_id: Requested product id.
        quantity: Requested quantity.
        price: Catalog price, or 0 when the product was not resolved.
        resolved: Whether the catalog returned a record for the product.
    """

    product_id: str
    quantity: int
    price: Decimal
    resolved: bool = True


@dataclass
class OrderTotals:
    """Result of aggregating requested items against catalog records."""

    total_amount: Decimal
    total_items: int
    lines: List[PricedLine]

    @property
    def unresolved(self) -> List[str]:
        """Distinct product ids the catalog did not know, in request order."""
        return list(dict.fromkeys(line.product_id for line in self.lines if not line.resolved))


@dataclass(frozen=True)
class EnrichedOrderItem:
    """OrderItem joined with the product name resolved from the catalog."""

    product_id: str
    quantity: int
    price: Decimal
    name: str


@dataclass
class EnrichedOrder:
    """Order view returned by create and find_one."""

    id: UUID
    status: OrderStatus
    total_amount: Decimal
    total_items: int
    items: List[EnrichedOrderItem]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class OrderPage:
    """One page of orders plus the pagination metadata."""

    data: List[Order]
    total: int
    page: int
    last_page: int


# ---- Errors ----
class OrderError(Exception):
    """Base class for errors surfaced by OrderService to its callers."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRequest(OrderError):
    """Order creation failed: bad product references, RPC or store failure."""


class NotFound(OrderError):
    """The requested order does not exist."""


class RemoteDependencyFailure(OrderError):
    """The catalog could not be reached while reading an order."""


class RemoteCatalogError(Exception):
    """Transport or application error raised by a CatalogPort."""


# ---- Ports (DIP) ----
class CatalogPort(Protocol):
    """Port describing the remote product catalog.

    Implementers resolve product ids into CatalogRecord instances through
    a request/response channel.
    """

    def resolve(self, product_ids: Iterable[str]) -> List[CatalogRecord]:
        """Resolve product ids into catalog records.

        Args:
            product_ids: Non-empty collection of product ids. Duplicates
                are allowed.

        Returns:
            At most one record per distinct id. Unknown ids are absent.

        Raises:
            RemoteCatalogError: On transport failure, timeout or a domain
                error reported by the catalog.
        """
        raise NotImplementedError()


class OrderStorePort(Protocol):
    """Port describing transactional persistence of orders."""

    def create(self, total_amount: Decimal, total_items: int, lines: List[PricedLine]) -> Order:
        """Atomically persist an order together with its line items."""
        raise NotImplementedError()

    def get(self, order_id: UUID) -> Optional[Order]:
        """Load an order and its items, or None when it does not exist."""
        raise NotImplementedError()

    def count(self, status: Optional[OrderStatus] = None) -> int:
        raise NotImplementedError()

    def find_page(self, status: Optional[OrderStatus], skip: int, take: int) -> List[Order]:
        raise NotImplementedError()
