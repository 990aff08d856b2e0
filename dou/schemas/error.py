"""API error envelope schemas."""

from pydantic import BaseModel, ConfigDict, Field


class ApiError(BaseModel):
    """One failure: a human-readable message plus an application status code."""

    model_config = ConfigDict(frozen=True)

    api_status: int = 0
    message: str


class ApiErrorItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class ApiErrors(BaseModel):
    """Batch envelope. Only the envelope-level status code is sent."""

    model_config = ConfigDict(frozen=True)

    api_status: int = 0
    errors: list[ApiErrorItem] = Field(min_length=1)


__all__ = ["ApiError", "ApiErrorItem", "ApiErrors"]
