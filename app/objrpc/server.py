"""HTTP boundary — Starlette ASGI app around one receiver.

Routes (``path`` defaults to ``/api``)::

    GET|POST <path>            RPC endpoint, fields ``func`` and ``param``
    GET      <path>/client.js  browser helper

The fields are read from the query string and, for urlencoded POST
bodies, from the body.  Every per-call outcome is HTTP 200; failures are
carried as ``{"error": ...}`` in the body.

Run directly::

    python -m objrpc.server --receiver objrpc.demo:Calculator
"""

from __future__ import annotations

import argparse
import logging
from typing import Any, Awaitable, Callable

import anyio.to_thread
from objrpc_wire import FUNCS, CallRequest, error_payload
from starlette.applications import Starlette
from starlette.datastructures import QueryParams
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from objrpc.client_js import RESERVED_NAMES, client_js_endpoint
from objrpc.config import Settings, load_receiver
from objrpc.dispatcher import call
from objrpc.registry import Registry, build

log = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
JSON_MEDIA_TYPE = "application/json"


# ── Helpers ──────────────────────────────────────────────────────────


async def _read_fields(request: Request) -> dict[str, str]:
    """Merge query-string fields with urlencoded body fields (body wins)."""
    fields = dict(request.query_params)
    content_type = request.headers.get("content-type", "")
    if request.method == "POST" and content_type.startswith(FORM_CONTENT_TYPE):
        body = await request.body()
        fields.update(QueryParams(body.decode("latin-1")))
    return fields


# ── RPC endpoint ─────────────────────────────────────────────────────


def make_endpoint(registry: Registry) -> Callable[[Request], Awaitable[Response]]:
    """Return the endpoint serving *registry*."""
    names = registry.names

    async def rpc_endpoint(request: Request) -> Response:
        fields = await _read_fields(request)
        try:
            req = CallRequest.from_fields(fields)
        except ValueError as exc:
            return Response(error_payload("%s", exc), media_type=JSON_MEDIA_TYPE)

        # Reserved name, answered before the registry is consulted.
        if req.func == FUNCS:
            return JSONResponse(names)

        log.info("rpc ← %s", req.func)
        payload = await anyio.to_thread.run_sync(call, registry, req.func, req.param_bytes)
        return Response(payload, media_type=JSON_MEDIA_TYPE)

    return rpc_endpoint


# ── App factory ──────────────────────────────────────────────────────


def create_app(receiver: Any, path: str = "/api", *, debug: bool = False) -> Starlette:
    """Build the app serving *receiver*'s public methods.

    Raises ``RegistryError`` if a public method breaks the calling convention.
    """
    registry = build(receiver)
    if FUNCS in registry:
        log.warning("method %r is shadowed by the reserved function list", FUNCS)
    for name in RESERVED_NAMES:
        if name in registry:
            log.warning("method %r is not mirrored by the browser helper", name)

    path = "/" + path.strip("/")
    return Starlette(
        debug=debug,
        routes=[
            Route(path.rstrip("/") + "/client.js", client_js_endpoint, methods=["GET"]),
            Route(path, make_endpoint(registry), methods=["GET", "POST"]),
        ],
    )


# ── Runnable entrypoint ──────────────────────────────────────────────


def _parse_args(settings: Settings) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve an object's methods over JSON RPC")
    parser.add_argument("--receiver", default=settings.receiver, help="module:attr to serve")
    parser.add_argument("--host", default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    parser.add_argument("--path", default=settings.path, help="RPC endpoint path")
    parser.add_argument("--log-level", default=settings.log_level)
    return parser.parse_args()


if __name__ == "__main__":
    import uvicorn

    args = _parse_args(Settings.from_env())
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    uvicorn.run(
        create_app(load_receiver(args.receiver), args.path),
        host=args.host,
        port=args.port,
        log_level=args.log_level,
    )
