"""Service provider helpers for wiring OrderService with ports.

This module exposes a small factory function `get_order_service` that
returns a configured `OrderService` instance. By default it uses the HTTP
catalog client (``settings.USE_HTTP_ADAPTERS``). When HTTP adapters are
disabled the function falls back to the in-process catalog stub suitable
for tests and local development. Persistence always goes through the
Django ORM repository.
"""

from django.conf import settings

from .adapters import CatalogStub
from .http_adapters import HttpCatalogClient
from .repository import OrderRepository
from .service import OrderService


def get_order_service() -> OrderService:
    """Return a configured OrderService instance.

    Returns:
        OrderService: A service instance with appropriate ports.
    """
    if getattr(settings, "USE_HTTP_ADAPTERS", True):
        catalog = HttpCatalogClient()
    else:
        catalog = CatalogStub(getattr(settings, "CATALOG_STUB_PRODUCTS", None))

    return OrderService(
        catalog=catalog,
        store=OrderRepository(),
        reject_unresolved=getattr(settings, "ORDERS_REJECT_UNRESOLVED", False),
    )
