"""Python client — async mirror of a served receiver.

* ``call(func, param)`` → decoded result
* ``funcs()``           → names of the remote functions
* ``bind()``            → object whose attributes are the remote functions

Uses ``httpx.AsyncClient`` with connection pooling.
**Never** imports from ``objrpc``.

Run directly for a quick demo against ``python -m objrpc.server``::

    python -m objrpc_client.client
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx
import msgspec
from objrpc_wire import FUNCS, CallRequest, ErrorPayload
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

log = logging.getLogger(__name__)


class _NoParam:
    def __repr__(self) -> str:
        return "NO_PARAM"


# Marker for calls that carry no argument (``None`` is sent as JSON null).
NO_PARAM: Any = _NoParam()


class RpcError(Exception):
    """Raised when the server answers with the ``{"error": ...}`` payload."""

    def __init__(self, error: ErrorPayload) -> None:
        self.error = error
        super().__init__(error.message)


class ObjRpcClient:
    """Thin async client for an object RPC endpoint.

    Parameters
    ----------
    base_url : str
        Server origin, e.g. ``http://127.0.0.1:8100``.
    path : str
        RPC endpoint path on the server.
    timeout : float
        Default request timeout in seconds.
    max_retries : int
        Attempts per call before a transport error is re-raised.
    backoff : float
        Base of the exponential wait between attempts, in seconds.
    transport : httpx.AsyncBaseTransport, optional
        Custom transport, e.g. ``httpx.ASGITransport`` in tests.
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:8100",
        path: str = "/api",
        timeout: float = 30.0,
        max_retries: int = 3,
        backoff: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.path = "/" + path.strip("/")
        self.max_retries = max_retries
        self.backoff = backoff
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    # -- Lifecycle -----------------------------------------------------

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ObjRpcClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # -- Transport -----------------------------------------------------

    async def _post(self, req: CallRequest) -> httpx.Response:
        """POST *req*, retrying connection failures and timeouts (never HTTP errors)."""
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=self.backoff, max=10),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                resp = await self._client.post(self.path, data=req.to_form())
                resp.raise_for_status()
        return resp

    # -- Calls ---------------------------------------------------------

    async def call(self, func: str, param: Any = NO_PARAM, *, type: Any = Any) -> Any:
        """Call *func* on the server and return its result.

        Returns ``None`` for functions without a value output.  Raises
        ``RpcError`` if the server reports a failure.
        """
        encoded = "" if param is NO_PARAM else msgspec.json.encode(param).decode()
        req = CallRequest(func=func, param=encoded)

        log.debug("rpc → %s", func)
        resp = await self._post(req)

        if not resp.content:
            return None
        error = ErrorPayload.parse(resp.content)
        if error is not None:
            raise RpcError(error)
        return msgspec.json.decode(resp.content, type=type)

    async def funcs(self) -> list[str]:
        """Names of the functions the server exposes."""
        resp = await self._post(CallRequest(func=FUNCS))
        return json.loads(resp.content)

    async def bind(self) -> "RemoteObject":
        """Fetch the remote function list and return a mirror object."""
        return RemoteObject(self, await self.funcs())


class RemoteMethod:
    """Async callable for one remote function."""

    def __init__(self, client: ObjRpcClient, name: str) -> None:
        self._client = client
        self.name = name

    async def __call__(self, param: Any = NO_PARAM, *, type: Any = Any) -> Any:
        return await self._client.call(self.name, param, type=type)

    def __repr__(self) -> str:
        return f"<RemoteMethod {self.name}>"


class RemoteObject:
    """Mirror of a served receiver: ``await remote.half(10)``."""

    def __init__(self, client: ObjRpcClient, names: list[str]) -> None:
        self._client = client
        self._methods = {name: RemoteMethod(client, name) for name in names}

    def __getattr__(self, name: str) -> RemoteMethod:
        try:
            return self.__dict__["_methods"][name]
        except KeyError:
            raise AttributeError(f"remote object has no function {name!r}") from None

    def __dir__(self) -> list[str]:
        return sorted(set(super().__dir__()) | set(self._methods))

    @property
    def names(self) -> list[str]:
        return sorted(self._methods)


# ── Demo entrypoint ──────────────────────────────────────────────────


async def _demo() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    async with ObjRpcClient() as client:
        remote = await client.bind()
        print(f"── funcs: {remote.names}")

        print("── half ──")
        print(f"  result: {await remote.half(10)}")

        print("── add ──")
        print(f"  result: {await remote.add({'a': 17, 'b': 25})}")

        print("── divide by zero ──")
        try:
            await remote.divide({"a": 1, "b": 0})
        except RpcError as exc:
            print(f"  error: {exc}")

        print("── done ──")


if __name__ == "__main__":
    import anyio

    anyio.run(_demo)
