"""Service instance: router binding, route registration and response helpers."""

from __future__ import annotations

import inspect
from collections.abc import Callable, Sequence
from typing import Any, NoReturn

from fastapi import Request
from starlette.concurrency import run_in_threadpool
from starlette.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send

from dou import responses
from dou.errors import RequestError
from dou.middleware import TimeoutMiddleware
from dou.routing import Endpoint, FastAPIRouter, Router
from dou.server import ServerRunner

Config = dict[str, Any]
Handler = Callable[[Request], Any]


class Service:
    """Binds one router, one configuration mapping and the server tuning knobs.

    ``config`` is filled during setup and only read once the server is
    listening. Timeouts are in seconds; ``0`` means no limit, as does
    ``max_header_bytes=0``.

    Handlers registered through ``get``/``post``/``put``/``delete`` always
    answer with ``application/json; charset=utf-8``: the header is set after
    the handler returns, so a handler cannot choose another content type.
    Register a non-JSON endpoint directly on ``router`` instead.
    """

    def __init__(
        self,
        router: Router | None = None,
        config: Config | None = None,
        *,
        read_timeout: float = 0,
        write_timeout: float = 0,
        max_header_bytes: int = 0,
    ) -> None:
        self.router: Router = router if router is not None else FastAPIRouter()
        self.config: Config = config if config is not None else {}
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout
        self.max_header_bytes = max_header_bytes
        self._middleware: list[tuple[type, dict[str, Any]]] = []
        self._app: ASGIApp | None = None

    # --- routing helpers ---

    def get(self, path: str, handler: Handler) -> None:
        self.router.get(path, self._json_endpoint(handler))

    def post(self, path: str, handler: Handler) -> None:
        self.router.post(path, self._json_endpoint(handler))

    def put(self, path: str, handler: Handler) -> None:
        self.router.put(path, self._json_endpoint(handler))

    def delete(self, path: str, handler: Handler) -> None:
        self.router.delete(path, self._json_endpoint(handler))

    def _json_endpoint(self, handler: Handler) -> Endpoint:
        """Wrap ``handler`` so its response always carries the JSON content type."""
        is_async = inspect.iscoroutinefunction(handler)

        async def endpoint(request: Request) -> Response:
            try:
                if is_async:
                    result = await handler(request)
                else:
                    result = await run_in_threadpool(handler, request)
            except RequestError as exc:
                result = self.request_error(exc)

            response = result if isinstance(result, Response) else responses.ok(result)
            response.headers["content-type"] = responses.JSON_CONTENT_TYPE
            return response

        endpoint.__name__ = getattr(handler, "__name__", "endpoint")
        return endpoint

    # --- response helpers ---

    def error(self, err: str | BaseException, status_code: int = 500, api_status: int = 0) -> Response:
        return responses.error(err, status_code=status_code, api_status=api_status)

    def errors(
        self,
        errs: Sequence[str | BaseException],
        status_code: int = 500,
        api_status: int = 0,
    ) -> Response:
        return responses.errors(errs, status_code=status_code, api_status=api_status)

    def ok(self, data: Any, status_code: int = 200, api_status: int | None = None) -> Response:
        return responses.ok(data, status_code=status_code, api_status=api_status)

    def request_error(self, exc: RequestError) -> Response:
        """Convert a handler-raised ``RequestError`` into its envelope."""
        if exc.batch:
            return self.errors(exc.errors, status_code=exc.status_code, api_status=exc.api_status)
        return self.error(exc.errors[0], status_code=exc.status_code, api_status=exc.api_status)

    # --- ASGI ---

    def add_middleware(self, middleware_class: type, **options: Any) -> None:
        """Wrap the router in ``middleware_class``; must be called before serving."""
        if self._app is not None:
            raise RuntimeError("Cannot add middleware after the service has started")
        self._middleware.append((middleware_class, options))

    def build_app(self) -> ASGIApp:
        app: ASGIApp = self.router
        for middleware_class, options in reversed(self._middleware):
            app = middleware_class(app, **options)
        return TimeoutMiddleware(
            app,
            read_timeout=self.read_timeout,
            write_timeout=self.write_timeout,
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if self._app is None:
            self._app = self.build_app()
        await self._app(scope, receive, send)

    # --- server helper ---

    def run(self, address: str) -> NoReturn:
        """Listen on ``address`` and serve until interrupted.

        Always ends by raising a ``FatalServiceError``; see ``ServerRunner.run``.
        """
        ServerRunner(self).run(address)


__all__ = ["Config", "Handler", "Service"]
