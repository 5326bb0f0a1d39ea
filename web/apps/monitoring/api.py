from django.db import DatabaseError, connection
from django.http import JsonResponse

from apps.orders.http_adapters import catalog_circuit_state


def health_view(_request):
    """Report database reachability and the catalog circuit state.

    The service is healthy while the database answers; an OPEN catalog
    circuit is reported but only degrades order creation and reads.
    """
    try:
        with connection.cursor() as cur:
            cur.execute("SELECT 1;")
        db_ok = True
    except DatabaseError:
        db_ok = False

    circuit = catalog_circuit_state()
    return JsonResponse(
        {
            "ok": db_ok,
            "components": {
                "db": {"ok": db_ok},
                "catalog": {"ok": circuit != "OPEN", "circuit": circuit},
            },
        },
        status=200 if db_ok else 503,
    )
