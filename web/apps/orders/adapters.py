"""In-process stub adapter for the catalog port.

The stub implements ``CatalogPort`` without any network calls. It is
intended for unit tests and local development where deterministic
behavior is useful and the catalog service is not running.
"""

from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from .domain import CatalogPort, CatalogRecord, RemoteCatalogError

DEFAULT_PRODUCTS = {
    "1": ("Keyboard", Decimal("49.90")),
    "2": ("Mouse", Decimal("19.99")),
    "3": ("Monitor", Decimal("189.00")),
}


class CatalogStub(CatalogPort):
    """Stub implementation of ``CatalogPort`` backed by a dict.

    Unknown ids are left out of the result, like the real catalog does.
    ``calls`` records every list of ids received so tests can assert on
    the number of round trips.
    """

    def __init__(self, products: Optional[Dict[str, tuple]] = None):
        """Create the stub.

        Args:
            products: Mapping of product id to ``(name, price)``. Defaults
                to a small fixed catalog.
        """
        source = DEFAULT_PRODUCTS if products is None else products
        self.products = {str(pid): (name, Decimal(str(price))) for pid, (name, price) in source.items()}
        self.calls: List[List[str]] = []

    def resolve(self, product_ids: Iterable[str]) -> List[CatalogRecord]:
        """Return the records for the known ids.

        Raises:
            RemoteCatalogError: When no ids are given.
        """
        ids = list(dict.fromkeys(str(pid) for pid in product_ids))
        self.calls.append(ids)
        if not ids:
            raise RemoteCatalogError("product ids must not be empty")
        return [
            CatalogRecord(id=pid, name=self.products[pid][0], price=self.products[pid][1])
            for pid in ids
            if pid in self.products
        ]
