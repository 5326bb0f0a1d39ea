"""HTTP adapter for the product catalog RPC channel.

This module implements ``CatalogPort`` with ``httpx``. Each call sends one
``validate_products`` message to the catalog's RPC endpoint and waits for a
single reply. It adds:

- Request correlation: propagates ``X-Request-ID`` from a ContextVar set by
    the gateway middleware.
- A circuit breaker for the catalog, so an unhealthy catalog fails calls
    fast instead of tying up request threads until the timeout, with
    HALF_OPEN probing after a timeout.

There are no retries: a single failed call fails the whole operation.
"""

import logging
import threading
import time
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional

import httpx
from django.conf import settings
from django.utils.module_loading import import_string

from .domain import CatalogPort, CatalogRecord, RemoteCatalogError

REQUEST_ID_CTX = import_string("gateway.middleware.REQUEST_ID_CTX")
VALIDATE_PRODUCTS = "validate_products"

logger = logging.getLogger("orders.catalog")


# ---------------- Circuit Breaker ---------------- #

class CircuitBreaker:
    """Minimal circuit breaker with CLOSED/OPEN/HALF_OPEN states.

    Transitions:
    - CLOSED → OPEN when failures reach ``fail_threshold``.
    - OPEN → HALF_OPEN after ``reset_timeout`` seconds.
    - HALF_OPEN → CLOSED on a successful probe; stays HALF_OPEN while a
      single probe is in flight; transitions back to OPEN on failure.

    This implementation is thread-safe via an internal lock.
    """

    def __init__(self, name: str, fail_threshold: int, reset_timeout: float):
        self.name = name
        self.fail_threshold = fail_threshold
        self.reset_timeout = reset_timeout
        self._lock = threading.RLock()
        self._failures = 0
        self._state = "CLOSED"  # CLOSED | OPEN | HALF_OPEN
        self._opened_at = 0.0
        self._half_open_probe_in_flight = False

    @property
    def state(self) -> str:
        """Current breaker state with time-based transition handling."""
        with self._lock:
            if self._state == "OPEN" and (time.monotonic() - self._opened_at) >= self.reset_timeout:
                self._state = "HALF_OPEN"
                self._half_open_probe_in_flight = False
            return self._state

    def before_call(self) -> str:
        """Check and update state before a protected call.

        Returns:
            str: The state at call time.

        Raises:
            RemoteCatalogError: If the circuit is OPEN or a HALF_OPEN probe
                is already in flight.
        """
        with self._lock:
            st = self.state
            if st == "OPEN":
                raise RemoteCatalogError("CIRCUIT_OPEN")
            if st == "HALF_OPEN":
                if self._half_open_probe_in_flight:
                    raise RemoteCatalogError("CIRCUIT_HALF_OPEN_BUSY")
                self._half_open_probe_in_flight = True
            return st

    def on_success(self):
        """Record a successful call and close/reset the breaker."""
        with self._lock:
            self._failures = 0
            self._state = "CLOSED"
            self._half_open_probe_in_flight = False

    def on_failure(self):
        """Record a failed call and open the breaker if threshold reached.

        A failed HALF_OPEN probe reopens the breaker immediately.
        """
        with self._lock:
            self._failures += 1
            if self._state == "HALF_OPEN" or (self._failures >= self.fail_threshold and self._state != "OPEN"):
                self._state = "OPEN"
                self._opened_at = time.monotonic()
                self._half_open_probe_in_flight = False
                logger.warning("circuit %s opened after %d failures", self.name, self._failures)

    def on_finish(self):
        """Release any HALF_OPEN probe flag after a call finishes."""
        with self._lock:
            if self._state == "HALF_OPEN":
                self._half_open_probe_in_flight = False


_catalog_cb = CircuitBreaker(
    "catalog",
    getattr(settings, "HTTP_CIRCUIT_FAIL_THRESHOLD", 5),
    getattr(settings, "HTTP_CIRCUIT_RESET_TIMEOUT", 30.0),
)


def catalog_circuit_state() -> str:
    return _catalog_cb.state


# ---------------- Helpers ---------------- #

def _request_headers(extra: Optional[dict] = None) -> dict:
    """Build base headers including X-Request-ID and any extras.

    Args:
        extra: Optional dict of additional headers to include.

    Returns:
        dict: Final headers dictionary for the outgoing request.
    """
    headers: dict[str, str] = {}
    rid = REQUEST_ID_CTX.get()
    if rid and rid != "-":
        headers["X-Request-ID"] = rid
    if extra:
        headers.update(extra)
    return headers


def _error_message(resp: httpx.Response) -> str:
    """Extract the catalog's error message from a non-2xx reply."""
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        msg = body.get("message") or body.get("detail")
        if isinstance(msg, str) and msg:
            return msg
    return f"Catalog replied with HTTP {resp.status_code}"


def _parse_records(body, requested: List[str]) -> List[CatalogRecord]:
    """Turn a reply body into at most one record per requested id.

    Records for ids that were not requested are dropped; when the reply
    repeats an id the first record wins.

    Raises:
        RemoteCatalogError: If the reply is not a list of product objects
            or a price is negative or not a finite number.
    """
    if not isinstance(body, list):
        raise RemoteCatalogError("MALFORMED_CATALOG_REPLY")
    wanted = set(requested)
    records: dict[str, CatalogRecord] = {}
    for raw in body:
        try:
            record = CatalogRecord(
                id=str(raw["id"]),
                name=str(raw["name"]),
                price=Decimal(str(raw["price"])),
            )
        except (TypeError, KeyError, InvalidOperation):
            raise RemoteCatalogError("MALFORMED_CATALOG_REPLY")
        if not record.price.is_finite() or record.price < 0:
            raise RemoteCatalogError("MALFORMED_CATALOG_REPLY")
        if record.id in wanted:
            records.setdefault(record.id, record)
    return list(records.values())


# ---------------- Catalog Adapter ---------------- #

class HttpCatalogClient(CatalogPort):
    """HTTP client for the catalog RPC endpoint with a circuit breaker."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = base_url or settings.CATALOG_RPC_URL
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECS

    def resolve(self, product_ids: Iterable[str]) -> List[CatalogRecord]:
        """Resolve product ids through one ``validate_products`` call.

        Maps replies:
        - 200 → list of records (unknown ids simply absent)
        - 4xx → RemoteCatalogError with the catalog's message; not counted
          as a circuit failure
        - 5xx, transport errors, timeouts → RemoteCatalogError; counted as
          circuit failures

        Args:
            product_ids: Non-empty collection of ids; duplicates are sent
                only once.

        Returns:
            list[CatalogRecord]: At most one record per distinct id.

        Raises:
            RemoteCatalogError: On any failure, including an open circuit.
        """
        ids = list(dict.fromkeys(str(pid) for pid in product_ids))
        if not ids:
            raise RemoteCatalogError("product ids must not be empty")

        payload = {"cmd": VALIDATE_PRODUCTS, "payload": ids}
        state = _catalog_cb.before_call()
        headers = _request_headers({"X-Circuit-State": state})

        try:
            with httpx.Client(timeout=self.timeout) as client:
                try:
                    resp = client.post(f"{self.base_url}/rpc", json=payload, headers=headers)
                except httpx.RequestError as e:
                    _catalog_cb.on_failure()
                    logger.warning("catalog call failed: %s", e)
                    raise RemoteCatalogError(str(e) or type(e).__name__) from e

                if resp.status_code >= 500:
                    _catalog_cb.on_failure()
                    raise RemoteCatalogError(_error_message(resp))
                # Business outcome, not a circuit failure
                _catalog_cb.on_success()
                if resp.status_code != 200:
                    raise RemoteCatalogError(_error_message(resp))

                try:
                    body = resp.json()
                except ValueError as e:
                    raise RemoteCatalogError("MALFORMED_CATALOG_REPLY") from e
                return _parse_records(body, ids)
        finally:
            _catalog_cb.on_finish()
