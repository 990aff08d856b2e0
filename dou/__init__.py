"""JSON API helper package."""

from .errors import (
    EnvelopeEncodingError,
    FatalServiceError,
    ListenError,
    RequestError,
    ServeError,
    ServerClosedError,
    ServiceError,
)
from .responses import JSON_CONTENT_TYPE, error, errors, ok
from .routing import FastAPIRouter, Router
from .server import ServerRunner, ShutdownSignal
from .service import Config, Service

__all__ = [
    "JSON_CONTENT_TYPE",
    "Config",
    "EnvelopeEncodingError",
    "FastAPIRouter",
    "FatalServiceError",
    "ListenError",
    "RequestError",
    "Router",
    "ServeError",
    "ServerClosedError",
    "ServerRunner",
    "Service",
    "ServiceError",
    "ShutdownSignal",
    "error",
    "errors",
    "ok",
]
