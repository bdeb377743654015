"""
Gateway — single entry point in front of the services

    client ──▶ gateway ──┬──▶ /v1/orders/* ──▶ Order Service
                         └──▶ /v1/users/*  ──▶ Users Service

At the edge, before routing:
  1. assign (or keep) X-Request-ID, forwarded upstream and echoed back
  2. per-client fixed-window rate limit
  3. bearer token check, except on public paths (register, login, health)

The gateway holds no domain logic; an unreachable service becomes a
503 SERVICE_UNAVAILABLE instead of a hanging or broken response.
"""

import logging
import os
from contextlib import asynccontextmanager
from uuid import uuid4

import httpx
import jwt
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import (
    GatewayError,
    InvalidCredential,
    RateLimitExceeded,
    RouteNotFound,
    Unauthenticated,
    UpstreamUnavailable,
)
from .rate_limit import FixedWindowRateLimiter

SERVICE_ORDERS_URL = os.environ.get("SERVICE_ORDERS_URL", "http://service_orders:3002")
SERVICE_USERS_URL = os.environ.get("SERVICE_USERS_URL", "http://service_users:3001")
JWT_SECRET = os.environ.get("JWT_SECRET", "dev_secret")
JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
RATE_LIMIT_MAX = int(os.environ.get("RATE_LIMIT_MAX", "100"))
RATE_LIMIT_WINDOW_SECONDS = float(os.environ.get("RATE_LIMIT_WINDOW_SECONDS", str(15 * 60)))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

PUBLIC_PATHS = ("/v1/users/register", "/v1/users/login", "/health")

# connection-level headers that must not be copied between hops
HOP_BY_HOP_HEADERS = frozenset(
    {"host", "connection", "keep-alive", "transfer-encoding", "content-length", "upgrade"}
)
# httpx already decoded the upstream body
DROPPED_RESPONSE_HEADERS = HOP_BY_HOP_HEADERS | {"content-encoding"}

logger = logging.getLogger(__name__)


def _is_public(path: str) -> bool:
    return any(path == public or path.startswith(public + "/") for public in PUBLIC_PATHS)


def _check_token(request: Request, secret: str, algorithm: str) -> None:
    authorization = request.headers.get("authorization", "")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthenticated()
    try:
        jwt.decode(token.strip(), secret, algorithms=[algorithm])
    except jwt.PyJWTError as exc:
        raise InvalidCredential() from exc


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "anonymous"


async def _proxy(request: Request, base_url: str, service_name: str) -> Response:
    """Forward the request as-is to `base_url` + path and relay the answer."""
    client: httpx.AsyncClient = request.app.state.http_client
    headers = {
        key: value
        for key, value in request.headers.items()
        if key.lower() not in HOP_BY_HOP_HEADERS
    }
    headers["x-request-id"] = request.state.request_id

    try:
        upstream = await client.request(
            request.method,
            f"{base_url}{request.url.path}",
            params=list(request.query_params.multi_items()),
            content=await request.body(),
            headers=headers,
        )
    except httpx.RequestError as exc:
        logger.error(
            "Proxy error to %s (request %s): %s", service_name, request.state.request_id, exc
        )
        raise UpstreamUnavailable(f"{service_name.capitalize()} service is unavailable") from exc

    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        headers={
            key: value
            for key, value in upstream.headers.items()
            if key.lower() not in DROPPED_RESPONSE_HEADERS
        },
    )


async def handle_gateway_error(request: Request, exc: GatewayError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        error = RouteNotFound()
        return JSONResponse(status_code=404, content=error.to_dict())
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": {"code": "HTTP_ERROR", "message": str(exc.detail)}},
    )


def create_app(
    orders_url: str = SERVICE_ORDERS_URL,
    users_url: str = SERVICE_USERS_URL,
    jwt_secret: str = JWT_SECRET,
    jwt_algorithm: str = JWT_ALGORITHM,
    rate_limiter: FixedWindowRateLimiter | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    log_level: str | None = None,
) -> FastAPI:
    rate_limiter = rate_limiter or FixedWindowRateLimiter(
        RATE_LIMIT_MAX, RATE_LIMIT_WINDOW_SECONDS
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if log_level:
            logging.basicConfig(
                level=log_level,
                format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            )
        app.state.http_client = httpx.AsyncClient(timeout=30.0, transport=transport)
        logger.info("Gateway routing /v1/orders -> %s, /v1/users -> %s", orders_url, users_url)
        yield
        await app.state.http_client.aclose()

    app = FastAPI(title="API Gateway", lifespan=lifespan)

    app.add_exception_handler(GatewayError, handle_gateway_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)

    @app.middleware("http")
    async def edge_middleware(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid4())
        request.state.request_id = request_id

        try:
            if not rate_limiter.hit(_client_key(request)):
                raise RateLimitExceeded()
            if not _is_public(request.url.path):
                _check_token(request, jwt_secret, jwt_algorithm)
        except GatewayError as exc:
            logger.info(
                "Rejected %s %s (request %s): %s",
                request.method, request.url.path, request_id, exc.code,
            )
            response = JSONResponse(status_code=exc.status_code, content=exc.to_dict())
        else:
            response = await call_next(request)

        response.headers["X-Request-ID"] = request_id
        return response

    # CORS outermost so preflight answers do not need a token
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    proxy_methods = ["GET", "POST", "PUT", "PATCH", "DELETE"]

    @app.api_route("/v1/orders", methods=proxy_methods)
    @app.api_route("/v1/orders/{path:path}", methods=proxy_methods)
    async def orders_proxy(request: Request):
        return await _proxy(request, orders_url, "orders")

    @app.api_route("/v1/users", methods=proxy_methods)
    @app.api_route("/v1/users/{path:path}", methods=proxy_methods)
    async def users_proxy(request: Request):
        return await _proxy(request, users_url, "users")

    @app.get("/health")
    async def health():
        return {"success": True, "data": {"status": "healthy", "service": "gateway"}}

    return app


app = create_app(log_level=LOG_LEVEL)
