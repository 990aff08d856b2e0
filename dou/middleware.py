"""ASGI middleware applied around the router."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from dou import responses
from dou.errors import FatalServiceError

logger = logging.getLogger(__name__)


class TimeoutMiddleware:
    """Per-request read and write deadlines.

    The read deadline covers receiving the whole request body, which is
    buffered before the app runs. The write deadline covers the app producing
    and sending its response. ``0`` disables either deadline.
    """

    def __init__(self, app: ASGIApp, *, read_timeout: float = 0, write_timeout: float = 0) -> None:
        self.app = app
        self.read_timeout = read_timeout
        self.write_timeout = write_timeout

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not (self.read_timeout or self.write_timeout):
            await self.app(scope, receive, send)
            return

        if self.read_timeout:
            try:
                async with asyncio.timeout(self.read_timeout):
                    buffered = await _read_body(receive)
            except TimeoutError:
                logger.warning(
                    "request.read_timeout method=%s path=%s timeout=%s",
                    scope.get("method"),
                    scope.get("path"),
                    self.read_timeout,
                )
                response = responses.error("Request Timeout", status_code=408)
                await response(scope, receive, send)
                return
            receive = _replay(buffered, receive)

        response_started = False

        async def tracked_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            async with asyncio.timeout(self.write_timeout or None) as deadline:
                await self.app(scope, receive, tracked_send)
        except TimeoutError:
            if not deadline.expired():
                raise
            logger.warning(
                "request.write_timeout method=%s path=%s timeout=%s started=%s",
                scope.get("method"),
                scope.get("path"),
                self.write_timeout,
                response_started,
            )
            if not response_started:
                response = responses.error("Service Unavailable", status_code=503)
                await response(scope, receive, send)


async def _read_body(receive: Receive) -> list[Message]:
    messages: list[Message] = []
    while True:
        message = await receive()
        messages.append(message)
        if message["type"] != "http.request" or not message.get("more_body", False):
            return messages


def _replay(messages: list[Message], receive: Receive) -> Receive:
    pending = list(messages)

    async def replay_receive() -> Message:
        if pending:
            return pending.pop(0)
        return await receive()

    return replay_receive


class AccessLogMiddleware:
    """Emit one Apache combined log line per HTTP request."""

    def __init__(self, app: ASGIApp, logger_name: str = "dou.access") -> None:
        self.app = app
        self.logger = logging.getLogger(logger_name)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        status_code = 500
        size = 0

        async def logging_send(message: Message) -> None:
            nonlocal status_code, size
            if message["type"] == "http.response.start":
                status_code = message["status"]
            elif message["type"] == "http.response.body":
                size += len(message.get("body", b""))
            await send(message)

        try:
            await self.app(scope, receive, logging_send)
        finally:
            self.logger.info(combined_log_line(scope, status_code, size))


def combined_log_line(scope: Scope, status_code: int, size: int, now: float | None = None) -> str:
    headers = {name.lower(): value.decode("latin-1") for name, value in scope.get("headers", [])}
    client = scope.get("client")
    host = client[0] if client else "-"
    timestamp = time.strftime("%d/%b/%Y:%H:%M:%S %z", time.localtime(now))
    target = scope.get("path", "")
    query = scope.get("query_string", b"")
    if query:
        target = f"{target}?{query.decode('latin-1')}"
    request_line = f"{scope.get('method', '-')} {target} HTTP/{scope.get('http_version', '1.1')}"
    return (
        f'{host} - - [{timestamp}] "{request_line}" {status_code} {size or "-"} '
        f'"{headers.get(b"referer", "-")}" "{headers.get(b"user-agent", "-")}"'
    )


class FatalErrorMiddleware:
    """Report ``FatalServiceError`` raised while serving, then re-raise it."""

    def __init__(self, app: ASGIApp, on_fatal: Callable[[FatalServiceError], None]) -> None:
        self.app = app
        self.on_fatal = on_fatal

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await self.app(scope, receive, send)
        except FatalServiceError as exc:
            logger.critical("server.fatal error=%s", exc)
            self.on_fatal(exc)
            raise


__all__ = [
    "AccessLogMiddleware",
    "FatalErrorMiddleware",
    "TimeoutMiddleware",
    "combined_log_line",
]
