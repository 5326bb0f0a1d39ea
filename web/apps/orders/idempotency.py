"""Idempotency keys for the create-order endpoint.

A client that may deliver the same create request more than once sends an
``Idempotency-Key`` header. The first request claims the key and, once
processed, stores its response; later requests with the same key and the
same payload get that stored response instead of creating a second order.
"""

import hashlib
import json
from datetime import timedelta

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from .models import IdempotencyKey


class IdempotencyConflict(Exception):
    """The key was already used with a different payload."""


class IdempotencyInProgress(Exception):
    """The key is claimed by a request that has not finished yet."""


def request_hash(payload: dict) -> str:
    """Compute a stable SHA-256 hash for a JSON-serializable payload.

    Keys are sorted and separators compacted so equivalent payloads hash
    the same regardless of field order.
    """
    body = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


@transaction.atomic
def claim(key: str, payload: dict):
    """Claim ``key`` for ``payload`` or fetch the record that already holds it.

    The create path runs in a nested savepoint so an IntegrityError from a
    concurrent claim only rolls back that block; the existing record is
    then read with a row lock (SELECT ... FOR UPDATE). A claim that never
    stored a response is taken over once it is older than
    ``IDEMPOTENCY_IN_PROGRESS_TTL_SECS``.

    Args:
        key: Client-provided idempotency key.
        payload: Request payload used to compute the request hash.

    Returns:
        tuple[bool, IdempotencyKey]: ``(existing, rec)``. ``existing`` is
        False when this call created or took over the record and the caller must
        process the request and call ``store_response``.

    Raises:
        IdempotencyConflict: The key exists with a different payload hash.
        IdempotencyInProgress: The key exists, has no stored response and
            its claim has not expired.
    """
    h = request_hash(payload)

    try:
        with transaction.atomic():
            rec = IdempotencyKey.objects.create(key=key, request_hash=h)
            return False, rec
    except IntegrityError:
        rec = IdempotencyKey.objects.select_for_update().get(key=key)

    if rec.request_hash != h:
        raise IdempotencyConflict(key)
    if not rec.response_status:
        ttl = timedelta(seconds=getattr(settings, "IDEMPOTENCY_IN_PROGRESS_TTL_SECS", 60))
        if timezone.now() - rec.created_at < ttl:
            raise IdempotencyInProgress(key)
        # claim left behind by a request that never finished
        rec.created_at = timezone.now()
        rec.save(update_fields=["created_at"])
        return False, rec
    return True, rec


def store_response(rec: IdempotencyKey, status_code: int, body: dict, order_id=None) -> None:
    """Persist the final response for a claimed key.

    Args:
        rec: The record returned by ``claim``.
        status_code: HTTP status code of the response.
        body: JSON-serializable response body.
        order_id: Id of the order created by the request, if any.
    """
    rec.response_status = status_code
    rec.response_body = body
    rec.order_id = order_id
    rec.save(update_fields=["response_status", "response_body", "order"])
