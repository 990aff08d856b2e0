"""Demonstration service: user registration on top of the core helpers."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

from fastapi import Request
from starlette.responses import Response

from dou.core.config import Settings, get_settings
from dou.errors import RequestError
from dou.middleware import AccessLogMiddleware
from dou.repositories.memory import InMemoryStore
from dou.routing import FastAPIRouter
from dou.schemas.user import User
from dou.service import Service

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ApiStatusCodes:
    """Application status codes shared by the demo handlers."""

    ok: int = 1
    validation_error: int = 100
    unexpected_error: int = 900


class UserHandlers:
    def __init__(self, service: Service, store: InMemoryStore, statuses: ApiStatusCodes) -> None:
        self._service = service
        self._store = store
        self._statuses = statuses

    async def list_users(self, _request: Request) -> Response:
        return self._service.ok(self._store.list_users(), api_status=self._statuses.ok)

    async def create_user(self, request: Request) -> Response:
        fields = await self._read_fields(request)
        user = User(name=str(fields.get("name") or ""), email=str(fields.get("email") or ""))

        errs = user.validation_errors()
        if errs:
            return self._service.errors(errs, status_code=422, api_status=self._statuses.validation_error)

        try:
            self._store.save_user(user)
        except RuntimeError as exc:
            return self._service.error(exc, status_code=500, api_status=self._statuses.unexpected_error)

        logger.info("users.created total=%s", self._store.user_write_count)
        return self._service.ok(user, status_code=201, api_status=self._statuses.ok)

    async def internal_error(self, _request: Request) -> Response:
        return self._service.error(
            "Internal server error",
            status_code=500,
            api_status=self._statuses.unexpected_error,
        )

    async def _read_fields(self, request: Request) -> dict[str, Any]:
        content_type = request.headers.get("content-type", "")
        if content_type.startswith("application/json"):
            try:
                payload = await request.json()
            except ValueError as exc:  # JSONDecodeError or UnicodeDecodeError
                raise RequestError(
                    "Invalid JSON body",
                    status_code=400,
                    api_status=self._statuses.validation_error,
                ) from exc
            return payload if isinstance(payload, dict) else {}
        form = await request.form()
        return dict(form)


def not_found_handler(documentation_url: str):
    async def not_found(_request: Request) -> Response:
        return Response(
            content=json.dumps({"message": "Not Found", "documentation_url": documentation_url}) + "\n",
            status_code=404,
            media_type="application/json; charset=utf-8",
        )

    return not_found


def create_example_service(
    store: InMemoryStore | None = None,
    settings: Settings | None = None,
    statuses: ApiStatusCodes | None = None,
) -> Service:
    settings = settings or get_settings()
    router = FastAPIRouter()
    router.not_found(not_found_handler(settings.documentation_url))

    service = Service(
        router,
        read_timeout=settings.read_timeout,
        write_timeout=settings.write_timeout,
        max_header_bytes=settings.max_header_bytes,
    )
    service.config["documentation_url"] = settings.documentation_url
    if settings.access_log:
        service.add_middleware(AccessLogMiddleware)

    handlers = UserHandlers(service, store or InMemoryStore(), statuses or ApiStatusCodes())
    service.get("/users", handlers.list_users)
    service.post("/users", handlers.create_user)
    service.get("/error", handlers.internal_error)
    return service
