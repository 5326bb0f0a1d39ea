"""Pydantic schemas for orders.

This module exposes the request validation schemas used by the orders API
and the read schemas used to render responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .domain import OrderStatus


class OrderItemIn(BaseModel):
    """Input schema for a single order line item.

    Attributes:
        product_id: Catalog product id. Numeric ids are accepted and
            normalized to strings.
        quantity: Positive integer indicating units requested.
    """

    product_id: str = Field(min_length=1, max_length=64)
    quantity: int = Field(gt=0)

    @field_validator("product_id", mode="before")
    @classmethod
    def normalize_product_id(cls, v):
        """Accept string or integer ids and strip surrounding whitespace.

        Raises:
            ValueError: When the id is neither a string nor an integer.
        """
        if isinstance(v, bool) or not isinstance(v, (str, int)):
            raise ValueError("product_id must be a string or an integer")
        return str(v).strip()


class CreateOrderDTO(BaseModel):
    """Schema for creating an order.

    Attributes:
        items: At least one `OrderItemIn`. Prices are never taken from the
            client; they come from the catalog.
    """

    items: list[OrderItemIn] = Field(min_length=1)


class OrderPaginationDTO(BaseModel):
    """Query parameters for listing orders."""

    page: int = Field(default=1, gt=0)
    limit: int = Field(default=10, gt=0, le=100)
    status: Optional[OrderStatus] = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        if isinstance(v, str):
            return v.upper() or None
        return v


class ChangeOrderStatusDTO(BaseModel):
    status: OrderStatus

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        return v.upper() if isinstance(v, str) else v


class OrderItemReadDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: str
    quantity: int
    price: Decimal
    name: str


class OrderReadDTO(BaseModel):
    """Order as rendered by list views (no items)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    status: OrderStatus
    total_amount: Decimal
    total_items: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class EnrichedOrderReadDTO(OrderReadDTO):
    """Order with its items named from the catalog."""

    items: list[OrderItemReadDTO]


class PageMetaDTO(BaseModel):
    total: int
    page: int
    last_page: int


class OrderPageDTO(BaseModel):
    data: list[OrderReadDTO]
    meta: PageMetaDTO
