"""
Order Service — FastAPI entry point

Every order endpoint needs `Authorization: Bearer <token>`; the claims it
carries identify the caller for the ownership checks in the use cases.
All responses share one envelope:

    {"success": true,  "data": ...}
    {"success": false, "error": {"code": ..., "message": ...}}

Routes are served under both /orders and /v1/orders (the gateway prefix).
"""

import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime
from decimal import Decimal
from typing import Annotated
from uuid import uuid4

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, PlainSerializer

from . import queries
from .aggregate import Order
from .auth import Claims, TokenVerifier, bearer_token
from .broker import RedisBroker
from .db import create_session_factory, init_db
from .errors import Forbidden, OrderServiceError
from .event_bus import EventBus
from .handlers import register_handlers
from .logging_setup import configure_logging, request_id_var
from .service import OrderService

DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite+aiosqlite:///./orders.db")
REDIS_URL = os.environ.get("REDIS_URL")
JWT_SECRET = os.environ.get("JWT_SECRET", "dev_secret")
JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

logger = logging.getLogger(__name__)

# Decimals stay exact internally and are rendered as plain JSON numbers
JsonNumber = Annotated[Decimal, PlainSerializer(float, return_type=float)]


# ── Request / Response Models ────────────────────

class ItemRequest(BaseModel):
    name: str
    quantity: Decimal
    price: Decimal


class CreateOrderRequest(BaseModel):
    items: list[ItemRequest]


class UpdateStatusRequest(BaseModel):
    status: str


class ItemResponse(BaseModel):
    name: str
    quantity: JsonNumber
    price: JsonNumber


class OrderResponse(BaseModel):
    id: str
    owner_id: str
    items: list[ItemResponse]
    total: JsonNumber
    status: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        return cls(
            id=order.id,
            owner_id=order.owner_id,
            items=[
                ItemResponse(name=i.name, quantity=i.quantity, price=i.unit_price)
                for i in order.items
            ],
            total=order.total,
            status=order.status.value,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


def _ok(data) -> dict:
    if isinstance(data, BaseModel):
        data = data.model_dump(mode="json")
    return {"success": True, "data": data}


def _error(code: str, message: str) -> dict:
    return {"success": False, "error": {"code": code, "message": message}}


# ── Dependencies ─────────────────────────────────

def get_service(request: Request) -> OrderService:
    return request.app.state.order_service


def current_claims(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
) -> Claims:
    verifier: TokenVerifier = request.app.state.verifier
    return verifier.verify(bearer_token(authorization))


ClaimsDep = Annotated[Claims, Depends(current_claims)]
ServiceDep = Annotated[OrderService, Depends(get_service)]


# ── Order Endpoints ──────────────────────────────

orders_router = APIRouter(prefix="/orders", tags=["orders"])


@orders_router.post("", status_code=201)
async def create_order(req: CreateOrderRequest, claims: ClaimsDep, service: ServiceDep):
    """Place an order; total is computed from the items."""
    order = await service.create_order(
        claims,
        [
            {"name": item.name, "quantity": item.quantity, "unit_price": item.price}
            for item in req.items
        ],
    )
    return _ok(OrderResponse.from_order(order))


@orders_router.get("")
async def list_orders(
    claims: ClaimsDep,
    service: ServiceDep,
    page: str | None = None,
    limit: str | None = None,
    status: str | None = None,
    sort_by: Annotated[str | None, Query(alias="sortBy")] = None,
    sort_order: Annotated[str | None, Query(alias="sortOrder")] = None,
):
    """The caller's orders, filtered, sorted and paginated."""
    orders, pagination = await service.list_orders(
        claims,
        queries.OrderFilter(status=status or None),
        queries.Sort.parse(sort_by, sort_order),
        queries.Page.parse(page, limit),
    )
    return _ok(
        {
            "orders": [OrderResponse.from_order(o).model_dump(mode="json") for o in orders],
            "pagination": pagination.to_dict(),
        }
    )


@orders_router.get("/{order_id}")
async def get_order(order_id: str, claims: ClaimsDep, service: ServiceDep):
    order = await service.get_order(claims, order_id)
    return _ok(OrderResponse.from_order(order))


@orders_router.patch("/{order_id}/status")
async def update_order_status(
    order_id: str, req: UpdateStatusRequest, claims: ClaimsDep, service: ServiceDep
):
    order = await service.update_status(claims, order_id, req.status)
    return _ok(OrderResponse.from_order(order))


@orders_router.delete("/{order_id}")
async def cancel_order(order_id: str, claims: ClaimsDep, service: ServiceDep):
    order = await service.cancel_order(claims, order_id)
    return _ok(
        {
            "message": "Order cancelled successfully",
            "order": OrderResponse.from_order(order).model_dump(mode="json"),
        }
    )


# ── Event Log (operators only) ───────────────────

events_router = APIRouter(prefix="/events", tags=["events"])


def _require_admin(claims: Claims) -> None:
    if not claims.is_admin:
        raise Forbidden("Admin role required")


@events_router.get("")
async def get_events(request: Request, claims: ClaimsDep, after: int = 0):
    """The in-process event log, oldest first."""
    _require_admin(claims)
    bus: EventBus = request.app.state.event_bus
    return _ok([event.to_dict() for event in bus.drain(after=after)])


@events_router.delete("")
async def clear_events(request: Request, claims: ClaimsDep):
    _require_admin(claims)
    bus: EventBus = request.app.state.event_bus
    dropped = bus.clear()
    logger.warning("Event log cleared by %s", claims.user_id)
    return _ok({"cleared": dropped})


# ── Error Handlers ───────────────────────────────

async def handle_service_error(request: Request, exc: OrderServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=_error(exc.code, exc.message))


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first['msg']}" if location else first["msg"]
    return JSONResponse(status_code=400, content=_error("VALIDATION_ERROR", message))


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
    )
    return JSONResponse(
        status_code=500, content=_error("INTERNAL_ERROR", "Internal Server Error")
    )


# ── Application ──────────────────────────────────

def create_app(
    database_url: str = DATABASE_URL,
    event_bus: EventBus | None = None,
    verifier: TokenVerifier | None = None,
    redis_url: str | None = REDIS_URL,
    log_level: str | None = None,
) -> FastAPI:
    """
    Build the service with explicit collaborators.

    The event bus is created here, once per process, and injected into the
    OrderService; tests pass their own bus and verifier.
    """
    engine, async_session = create_session_factory(database_url)
    event_bus = event_bus or EventBus()
    verifier = verifier or TokenVerifier(JWT_SECRET, JWT_ALGORITHM)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if log_level:
            configure_logging(log_level)
        await init_db(engine)

        redis_pool: aioredis.Redis | None = None
        if redis_url:
            redis_pool = aioredis.from_url(redis_url, decode_responses=True)
            event_bus.broker = RedisBroker(redis_pool)

        register_handlers(event_bus)
        logger.info("Domain event handlers registered")
        yield
        if redis_pool is not None:
            await redis_pool.aclose()
        await engine.dispose()

    app = FastAPI(title="Order Service", lifespan=lifespan)
    app.state.event_bus = event_bus
    app.state.verifier = verifier
    app.state.order_service = OrderService(async_session, event_bus)

    app.add_exception_handler(OrderServiceError, handle_service_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid4())
        token = request_id_var.set(request_id)
        try:
            response = await call_next(request)
            logger.info("%s %s -> %d", request.method, request.url.path, response.status_code)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = request_id
        return response

    app.include_router(orders_router)
    app.include_router(orders_router, prefix="/v1")
    app.include_router(events_router)

    @app.get("/health")
    async def health():
        return _ok({"status": "healthy", "service": "order-service"})

    return app


app = create_app(log_level=LOG_LEVEL)
