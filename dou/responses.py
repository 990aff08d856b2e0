"""JSON response writers.

Every writer returns a fully built Starlette ``Response`` carrying the JSON
content type; the status line is fixed at construction and written once by
the transport.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from pydantic_core import PydanticSerializationError
from starlette.responses import Response

from dou.errors import EnvelopeEncodingError
from dou.schemas.error import ApiError, ApiErrorItem, ApiErrors

JSON_CONTENT_TYPE = "application/json; charset=utf-8"
API_STATUS_HEADER = "X-API-Status"

logger = logging.getLogger(__name__)

_ENCODING_FAILURES = (ValidationError, PydanticSerializationError, TypeError, ValueError)


def _message(err: str | BaseException) -> str:
    return err if isinstance(err, str) else str(err)


def _envelope_response(body: str, status_code: int) -> Response:
    return Response(
        content=body,
        status_code=status_code,
        media_type=JSON_CONTENT_TYPE,
        headers={"X-Content-Type-Options": "nosniff"},
    )


def error(err: str | BaseException, status_code: int = 500, api_status: int = 0) -> Response:
    """Write ``{"api_status": ..., "message": ...}`` with the given HTTP status.

    Raises:
        EnvelopeEncodingError: the envelope could not be serialized.
    """
    message = _message(err)
    logger.error(message)

    try:
        body = ApiError(api_status=api_status, message=message).model_dump_json()
    except _ENCODING_FAILURES as exc:
        raise EnvelopeEncodingError(f"could not encode error envelope: {exc}") from exc

    return _envelope_response(body, status_code)


def errors(errs: Sequence[str | BaseException], status_code: int = 500, api_status: int = 0) -> Response:
    """Write ``{"api_status": ..., "errors": [{"message": ...}, ...]}`` preserving order.

    Per-error application status codes are not carried; only the envelope-level
    ``api_status`` is sent.

    Raises:
        EnvelopeEncodingError: the envelope could not be serialized, including
            an empty ``errs`` sequence.
    """
    messages = [_message(err) for err in errs]
    for message in messages:
        logger.error(message)

    try:
        envelope = ApiErrors(
            api_status=api_status,
            errors=[ApiErrorItem(message=message) for message in messages],
        )
        body = envelope.model_dump_json()
    except _ENCODING_FAILURES as exc:
        raise EnvelopeEncodingError(f"could not encode error envelope: {exc}") from exc

    return _envelope_response(body, status_code)


def ok(data: Any, status_code: int = 200, api_status: int | None = None) -> Response:
    """Write ``data`` as JSON; ``api_status`` travels in the ``X-API-Status`` header."""
    headers = {API_STATUS_HEADER: str(api_status)} if api_status is not None else None
    return JSONResponse(
        content=jsonable_encoder(data),
        status_code=status_code,
        headers=headers,
        media_type=JSON_CONTENT_TYPE,
    )


__all__ = ["API_STATUS_HEADER", "JSON_CONTENT_TYPE", "error", "errors", "ok"]
