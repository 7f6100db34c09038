"""
API Request and Response Schemas

This module defines all Pydantic models for API requests and responses.
Separated from endpoints to keep concerns separated and enable reuse.

Design Principles:
- Request models: Define input shape; URL and alias rules are enforced by
  the service so every caller gets the same error kinds
- Response models: Define output structure
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from shortlink.db.models import Link


class ShortenRequest(BaseModel):
    """Request model for URL shortening endpoint."""
    url: str = Field(..., min_length=1, description="The long URL to shorten")
    custom_alias: Optional[str] = Field(None, description="Optional custom short code")
    title: Optional[str] = Field(None, max_length=255, description="Optional label")
    expires_at: Optional[datetime] = Field(None, description="Optional expiry (must be in the future)")


class ShortenResponse(BaseModel):
    """Response model for URL shortening endpoint."""
    short_code: str = Field(..., description="The generated short code")
    short_url: str = Field(..., description="The complete short URL")
    original_url: str = Field(..., description="The normalized original URL")


class UpdateLinkRequest(BaseModel):
    """Partial update of an owned link; omitted fields are left unchanged."""
    title: Optional[str] = Field(None, max_length=255)
    is_active: Optional[bool] = None
    expires_at: Optional[datetime] = None


class LinkResponse(BaseModel):
    """Full view of a link for its owner."""
    id: str
    short_code: str
    short_url: str
    original_url: str
    title: Optional[str]
    click_count: int
    is_active: bool
    created_at: datetime
    updated_at: datetime
    expires_at: Optional[datetime]

    @classmethod
    def from_link(cls, link: Link, short_url: str) -> "LinkResponse":
        return cls(
            id=link.id,
            short_code=link.short_code,
            short_url=short_url,
            original_url=link.original_url,
            title=link.title,
            click_count=link.click_count,
            is_active=link.is_active,
            created_at=link.created_at,
            updated_at=link.updated_at,
            expires_at=link.expires_at,
        )


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class LinkListResponse(BaseModel):
    links: list[LinkResponse]
    pagination: Pagination


class StatsResponse(BaseModel):
    """Response model for statistics endpoint."""
    original_url: str
    short_code: str
    created_at: str
    click_count: int


class ErrorDetail(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: ErrorDetail
