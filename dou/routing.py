"""Router contract and the default FastAPI-backed implementation."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable

from fastapi import FastAPI, Request
from starlette.responses import Response
from starlette.types import Receive, Scope, Send

Endpoint = Callable[[Request], Awaitable[Response]]


@runtime_checkable
class Router(Protocol):
    """Per-verb registration plus ASGI dispatch.

    Any object with these methods can back a ``Service``; path matching is up
    to the implementation.
    """

    def get(self, path: str, endpoint: Endpoint) -> None: ...

    def head(self, path: str, endpoint: Endpoint) -> None: ...

    def post(self, path: str, endpoint: Endpoint) -> None: ...

    def put(self, path: str, endpoint: Endpoint) -> None: ...

    def delete(self, path: str, endpoint: Endpoint) -> None: ...

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None: ...


class FastAPIRouter:
    """Router backed by a FastAPI application."""

    def __init__(self, app: FastAPI | None = None) -> None:
        self.app = app or FastAPI(openapi_url=None, docs_url=None, redoc_url=None)

    def _add(self, method: str, path: str, endpoint: Endpoint) -> None:
        self.app.add_api_route(path, endpoint, methods=[method], include_in_schema=False)

    def get(self, path: str, endpoint: Endpoint) -> None:
        self._add("GET", path, endpoint)

    def head(self, path: str, endpoint: Endpoint) -> None:
        self._add("HEAD", path, endpoint)

    def post(self, path: str, endpoint: Endpoint) -> None:
        self._add("POST", path, endpoint)

    def put(self, path: str, endpoint: Endpoint) -> None:
        self._add("PUT", path, endpoint)

    def delete(self, path: str, endpoint: Endpoint) -> None:
        self._add("DELETE", path, endpoint)

    def not_found(self, endpoint: Endpoint) -> None:
        """Answer unmatched paths with ``endpoint`` instead of FastAPI's default 404."""

        async def handle_not_found(request: Request, _exc: Exception) -> Response:
            return await endpoint(request)

        self.app.add_exception_handler(404, handle_not_found)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.app(scope, receive, send)


__all__ = ["Endpoint", "FastAPIRouter", "Router"]
