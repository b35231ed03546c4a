"""API request and response schemas.

This module contains Pydantic models for API request validation
and response serialization.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from shortlink.core.security import BCRYPT_MAX_PASSWORD_BYTES
from shortlink.models.url import TTL


def _utf8(value: str) -> bytes:
    try:
        return value.encode("utf-8")
    except UnicodeEncodeError:
        raise ValueError("must be valid UTF-8 text") from None


class URLCreateRequest(BaseModel):
    """Request schema for creating a short link.

    ``target_url`` and ``ttl`` are checked by the service so that every
    invalid value gets the same 400 response shape.
    """
    target_url: str = Field(..., min_length=1, max_length=2048)
    slug: Optional[str] = None
    ttl: str = Field(..., examples=[t.value for t in TTL])
    password: Optional[str] = None

    @field_validator("target_url")
    def target_url_is_utf8(cls, v: str) -> str:
        _utf8(v)
        return v

    @field_validator("password")
    def password_fits_bcrypt(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(_utf8(v)) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValueError(f"password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes")
        return v

    @field_validator("slug")
    def empty_slug_means_generated(cls, v: Optional[str]) -> Optional[str]:
        return v or None


class URLCreateResponse(BaseModel):
    """Response schema for a created link. ``manage_token`` is only ever returned here."""
    slug: str
    short_url: str
    expires_at: datetime
    protected: bool
    manage_token: str


class SlugCheckResponse(BaseModel):
    available: bool
    suggestion: Optional[str] = None


class UnlockRequest(BaseModel):
    password: str = ""


class UnlockResponse(BaseModel):
    target_url: str


class ExpireRequest(BaseModel):
    manage_token: str = Field(..., min_length=1)


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """Response schema for errors."""
    detail: str
    error_id: Optional[str] = None  # Set for unexpected server errors
    errors: Optional[List[Dict[str, Any]]] = None  # For validation errors
