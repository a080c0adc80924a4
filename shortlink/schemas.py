"""Pydantic schemas for request/response validation in the shortlink API.

Schema Hierarchy
=================
::
    EncodeRequest (Input)
    ├─ url: str | None
    └─ slug: str | None (optional, 3-20 alphanumeric)

    EncodeResponse (Output)
    └─ short_url: str

    DecodeResponse (Output)
    └─ original_url: str

    ErrorResponse (Output)
    └─ error: str | list[str]

    HealthResponse (Output)
    ├─ status: HealthStatus
    ├─ database: HealthStatus
    └─ cache: HealthStatus

Key Behaviours
===============
- A missing or blank url is accepted by the schema and rejected by the route,
  so the caller gets the same error list as a link that failed validation.
- Requested slugs must be alphanumeric and 3-20 characters long.
"""

from pydantic import BaseModel, field_validator

from shortlink.enums import HealthStatus
from shortlink.models import slug_error

__all__ = [
    "EncodeRequest",
    "EncodeResponse",
    "DecodeResponse",
    "ErrorResponse",
    "HealthResponse",
]


class EncodeRequest(BaseModel):
    url: str | None = None
    slug: str | None = None

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: str | None) -> str | None:
        if v is not None:
            error = slug_error(v)
            if error:
                raise ValueError(error)
        return v


class EncodeResponse(BaseModel):
    short_url: str


class DecodeResponse(BaseModel):
    original_url: str


class ErrorResponse(BaseModel):
    error: str | list[str]


class HealthResponse(BaseModel):
    status: HealthStatus
    database: HealthStatus
    cache: HealthStatus
