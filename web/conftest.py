import pytest


@pytest.fixture(autouse=True)
def use_stubs_for_tests(settings):
    settings.USE_HTTP_ADAPTERS = False
    settings.ORDERS_REJECT_UNRESOLVED = False
    settings.CATALOG_STUB_PRODUCTS = {
        "1": ("Keyboard", "49.90"),
        "2": ("Mouse", "19.99"),
        "A": ("Widget", "10"),
    }


@pytest.fixture(autouse=True)
def reset_catalog_circuit():
    # El breaker es global al proceso: no arrastrar estado entre tests
    from apps.orders.http_adapters import _catalog_cb
    _catalog_cb.on_success()
    yield
    _catalog_cb.on_success()
