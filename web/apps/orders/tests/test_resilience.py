# web/apps/orders/tests/test_resilience.py
import httpx
import pytest

from apps.orders.domain import RemoteCatalogError
from apps.orders.http_adapters import CircuitBreaker, HttpCatalogClient, _catalog_cb


class Resp:
    def __init__(self, status_code, body=None):
        self.status_code = status_code
        self._body = body

    def json(self):
        return self._body


def test_catalog_is_not_retried_on_5xx(monkeypatch):
    calls = {"n": 0}

    def fake_post(self, url, json=None, headers=None, **kwargs):
        calls["n"] += 1
        return Resp(503, {"message": "unavailable"})

    monkeypatch.setattr(httpx.Client, "post", fake_post, raising=True)
    with pytest.raises(RemoteCatalogError):
        HttpCatalogClient(base_url="http://x").resolve(["1"])
    assert calls["n"] == 1


def test_circuit_opens_after_threshold_and_fails_fast(monkeypatch):
    calls = {"n": 0}

    def fake_post(self, url, json=None, headers=None, **kwargs):
        calls["n"] += 1
        raise httpx.ConnectError("connection refused")

    monkeypatch.setattr(httpx.Client, "post", fake_post, raising=True)
    client = HttpCatalogClient(base_url="http://x")
    for _ in range(_catalog_cb.fail_threshold):
        with pytest.raises(RemoteCatalogError):
            client.resolve(["1"])
    assert _catalog_cb.state == "OPEN"

    with pytest.raises(RemoteCatalogError) as e:
        client.resolve(["1"])
    assert str(e.value) == "CIRCUIT_OPEN"
    assert calls["n"] == _catalog_cb.fail_threshold


def test_domain_errors_do_not_open_the_circuit(monkeypatch):
    def fake_post(self, url, json=None, headers=None, **kwargs):
        return Resp(400, {"message": "bad request"})

    monkeypatch.setattr(httpx.Client, "post", fake_post, raising=True)
    client = HttpCatalogClient(base_url="http://x")
    for _ in range(_catalog_cb.fail_threshold + 1):
        with pytest.raises(RemoteCatalogError):
            client.resolve(["1"])
    assert _catalog_cb.state == "CLOSED"


def test_half_open_allows_single_probe(monkeypatch):
    clock = {"t": 100.0}
    monkeypatch.setattr("apps.orders.http_adapters.time.monotonic", lambda: clock["t"])
    cb = CircuitBreaker("test", fail_threshold=1, reset_timeout=10.0)

    cb.on_failure()
    assert cb.state == "OPEN"
    clock["t"] += 10.0
    assert cb.before_call() == "HALF_OPEN"
    with pytest.raises(RemoteCatalogError) as e:
        cb.before_call()
    assert str(e.value) == "CIRCUIT_HALF_OPEN_BUSY"

    cb.on_failure()
    assert cb.state == "OPEN"
    clock["t"] += 10.0
    cb.before_call()
    cb.on_success()
    assert cb.state == "CLOSED"
