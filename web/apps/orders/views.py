"""HTTP views for the orders app.

Views are kept intentionally small: they validate requests (via Pydantic),
map them to domain DTOs, delegate to ``OrderService`` and translate domain
errors into HTTP responses:

- ``InvalidRequest`` → 400
- ``NotFound`` → 404
- ``RemoteDependencyFailure`` → 503

Every error body is ``{"detail": <message>}``.

The views obtain a configured ``OrderService`` from ``get_order_service()``,
which wires either the HTTP catalog client or the in-process stub depending
on runtime settings.
"""
from uuid import UUID

from pydantic import ValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from . import providers
from .domain import InvalidRequest, NotFound, OrderItem, RemoteDependencyFailure
from .idempotency import IdempotencyConflict, IdempotencyInProgress, claim, store_response
from .schemas import (
    ChangeOrderStatusDTO,
    CreateOrderDTO,
    EnrichedOrderReadDTO,
    OrderPageDTO,
    OrderPaginationDTO,
    OrderReadDTO,
    PageMetaDTO,
)


def _validation_detail(e: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc']) or 'body'}: {err['msg']}" for err in e.errors()
    )


def _render_order(order) -> dict:
    return EnrichedOrderReadDTO.model_validate(order, from_attributes=True).model_dump(mode="json")


class OrdersPingView(APIView):
    """Simple health-check endpoint for the orders module."""

    def get(self, request):
        return Response({"ok": True})


class OrdersCollectionView(APIView):
    """List orders (GET) and create an order (POST).

    Creation validates every product against the catalog, prices the items
    from the catalog reply and persists the order with its items. It
    supports idempotency via the ``Idempotency-Key`` header: the first
    request is processed and its response stored; retries with the same key
    and payload get the stored response back. Reusing the key with a
    different payload returns HTTP 409.
    """
    throttle_classes = [ScopedRateThrottle]

    def get_throttles(self):
        # DRF evalúa los throttles en initial(), antes de get/post
        self.throttle_scope = "orders_list" if self.request.method == "GET" else "orders_create"
        return [throttle() for throttle in self.throttle_classes]

    def get(self, request):
        """Return one page of orders.

        Query parameters: ``page`` (default 1), ``limit`` (default 10) and
        an optional ``status`` filter.

        Returns:
            Response: 200 with ``{"data": [...], "meta": {"total", "page",
            "last_page"}}``, or 400 for invalid query parameters.
        """
        try:
            dto = OrderPaginationDTO.model_validate(request.query_params.dict())
        except ValidationError as e:
            return Response({"detail": _validation_detail(e)}, status=status.HTTP_400_BAD_REQUEST)

        page = providers.get_order_service().find_all(dto.status, dto.page, dto.limit)
        body = OrderPageDTO(
            data=[OrderReadDTO.model_validate(o, from_attributes=True) for o in page.data],
            meta=PageMetaDTO(total=page.total, page=page.page, last_page=page.last_page),
        )
        return Response(body.model_dump(mode="json"), status=status.HTTP_200_OK)

    def post(self, request):
        """Create a new order.

        Args:
            request (Request): DRF request with JSON body and optional
                ``Idempotency-Key`` header.

        Returns:
            Response: One of the following responses.
            - 201 with the order and its named items when created.
            - 200/201/400 with the stored body when the same idempotency
              key and payload are retried (``Idempotent-Replay: true``).
            - 409 with {detail: "IDEMPOTENCY_CONFLICT"} when the key is
              reused with a different payload, or
              {detail: "IDEMPOTENCY_IN_PROGRESS"} while the first request
              is still running.
            - 400 for payload validation errors and for any failure while
              validating products or persisting the order.
        """
        idem_key = request.headers.get("Idempotency-Key")

        # 1) Pydantic validation
        try:
            dto = CreateOrderDTO.model_validate(request.data)
        except ValidationError as e:
            return Response({"detail": _validation_detail(e)}, status=status.HTTP_400_BAD_REQUEST)

        # 2) Idempotency claim
        rec = None
        if idem_key:
            try:
                existing, rec = claim(idem_key, dto.model_dump())
            except IdempotencyConflict:
                return Response({"detail": "IDEMPOTENCY_CONFLICT"}, status=status.HTTP_409_CONFLICT)
            except IdempotencyInProgress:
                return Response({"detail": "IDEMPOTENCY_IN_PROGRESS"}, status=status.HTTP_409_CONFLICT)
            if existing:
                resp = Response(rec.response_body, status=rec.response_status)
                resp["Idempotent-Replay"] = "true"
                return resp

        # 3) Domain
        items = [OrderItem(product_id=i.product_id, quantity=i.quantity) for i in dto.items]
        try:
            order = providers.get_order_service().create(items)
        except InvalidRequest as e:
            body = {"detail": e.message}
            if rec:
                store_response(rec, status.HTTP_400_BAD_REQUEST, body)
            return Response(body, status=status.HTTP_400_BAD_REQUEST)

        # 4) Response
        body = _render_order(order)
        if rec:
            store_response(rec, status.HTTP_201_CREATED, body, order_id=order.id)
        return Response(body, status=status.HTTP_201_CREATED)


class RetrieveOrderView(APIView):
    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders_detail"

    def get(self, request, oid: UUID):
        try:
            order = providers.get_order_service().find_one(oid)
        except NotFound as e:
            return Response({"detail": e.message}, status=status.HTTP_404_NOT_FOUND)
        except RemoteDependencyFailure as e:
            return Response({"detail": e.message}, status=status.HTTP_503_SERVICE_UNAVAILABLE)
        return Response(_render_order(order), status=status.HTTP_200_OK)


class OrderStatusView(APIView):
    """Status changes are accepted for validation but not applied yet."""

    throttle_classes = [ScopedRateThrottle]
    throttle_scope = "orders_detail"

    def patch(self, request, oid: UUID):
        try:
            dto = ChangeOrderStatusDTO.model_validate(request.data)
        except ValidationError as e:
            return Response({"detail": _validation_detail(e)}, status=status.HTTP_400_BAD_REQUEST)

        providers.get_order_service().change_status(oid, dto.status)
        return Response({"detail": "NOT_IMPLEMENTED"}, status=status.HTTP_501_NOT_IMPLEMENTED)
