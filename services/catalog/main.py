"""Catalog service API built with FastAPI.

Stand-in for the product service the orders service validates against.
It answers RPC messages posted to ``/rpc``; the only command is
``validate_products``, which returns ``{id, name, price}`` for the
available products among the given ids and silently omits the rest.
Lookups are delegated to the SQLAlchemy-backed ``repo.CatalogRepo``.
"""

import logging
import time
import uuid
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from pythonjsonlogger import jsonlogger
from sqlalchemy import text

from repo import CatalogRepo, engine, init_db

app = FastAPI(title="Catalog Service")

# logger JSON
logger = logging.getLogger("catalog")
if not logger.handlers:
    h = logging.StreamHandler()
    h.setFormatter(jsonlogger.JsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s"))
    logger.addHandler(h)
    logger.setLevel(logging.INFO)


@app.on_event("startup")
def _startup_db():
    # espera activa breve hasta que la DB acepte conexiones
    deadline = time.time() + 30
    while True:
        try:
            with engine.connect() as conn:
                conn.execute(text("select 1"))
            break
        except Exception:
            if time.time() > deadline:
                raise
            time.sleep(1)
    init_db()


class RpcMessage(BaseModel):
    """Envelope of an RPC request.

    Attributes:
        cmd: Command name, e.g. ``validate_products``.
        payload: Command argument.
    """
    cmd: str
    payload: Any = None


class ProductOut(BaseModel):
    id: str
    name: str
    price: float


def _rpc_error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": status_code, "message": message})


def validate_products(payload: Any) -> list[ProductOut]:
    """Resolve product ids to the available products.

    Raises:
        ValueError: When the payload is not a list of ids.
    """
    if not isinstance(payload, list) or any(isinstance(p, bool) or not isinstance(p, (str, int)) for p in payload):
        raise ValueError("payload must be a list of product ids")
    products = CatalogRepo().find_many(str(p) for p in payload)
    return [ProductOut(id=p.id, name=p.name, price=float(p.price)) for p in products]


HANDLERS = {"validate_products": validate_products}


@app.get("/health")
def health():
    return {"ok": True}


@app.post("/rpc")
def rpc(message: dict):
    """Dispatch an RPC message to its command handler.

    Returns:
        list: The handler's reply, or a 400 response with
        ``{"status": 400, "message": ...}`` for malformed messages,
        unknown commands and invalid payloads.
    """
    try:
        msg = RpcMessage.model_validate(message)
    except ValidationError:
        return _rpc_error(400, "Malformed RPC message")

    handler = HANDLERS.get(msg.cmd)
    if handler is None:
        return _rpc_error(400, f"Unknown command: {msg.cmd}")
    try:
        return [p.model_dump() for p in handler(msg.payload)]
    except ValueError as e:
        return _rpc_error(400, str(e))


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = rid
    try:
        response = await call_next(request)
    finally:
        logger.info("request handled", extra={"request_id": rid, "path": request.url.path, "method": request.method})
    response.headers["X-Request-ID"] = rid
    return response
