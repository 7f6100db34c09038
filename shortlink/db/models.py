"""
Database Models for URL Shortener Service

This module defines the SQLModel database schemas for:
- Link: Maps a short code to its destination URL, owner and lifecycle flags
- Click: Append-only click events for analytics

Design Decisions:
- Unique index on short_code: the authoritative collision defense
- Links are never hard-deleted; is_active=False retires the code for good
- click_count denormalized in Link for quick stats without joins
- Separate Click table so analytics can scale independently
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlmodel import Column, Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (SQLite drops tzinfo) as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class Link(SQLModel, table=True):
    """
    Main table storing short code mappings.

    Fields:
    - id: Opaque UUID assigned at creation
    - short_code: Unique code (generated or custom alias, 3-50 chars)
    - original_url: Canonicalized destination URL
    - owner_id: Owning user, None for anonymous links
    - title: Optional label, editable by the owner
    - is_active: False once soft-deleted
    - expires_at: Optional instant after which the link stops resolving
    - click_count: Denormalized click counter (updated asynchronously)
    - created_at / updated_at: Audit timestamps

    Indexes:
    - short_code: Unique index for fast lookups (most critical path)
    - owner_id: For listing a user's links
    """
    __tablename__ = "urls"

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        sa_column=Column(String(36), primary_key=True)
    )
    short_code: str = Field(
        sa_column=Column(String(50), nullable=False, unique=True, index=True),
        max_length=50
    )
    original_url: str = Field(sa_column=Column(Text, nullable=False))
    owner_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(64), nullable=True, index=True)
    )
    title: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True)
    )
    is_active: bool = Field(
        default=True,
        sa_column=Column(Boolean, nullable=False, default=True)
    )
    expires_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    click_count: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False)
    )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        expires_at = as_utc(self.expires_at)
        return expires_at is not None and expires_at <= (now or utcnow())

    def is_resolvable(self, now: Optional[datetime] = None) -> bool:
        return self.is_active and not self.is_expired(now)


class Click(SQLModel, table=True):
    """
    Click event table for detailed analytics.

    Rows are only ever inserted, by the background click recorder.
    Device type and browser are derived from the User-Agent at write time.
    """
    __tablename__ = "clicks"

    id: Optional[int] = Field(default=None, primary_key=True)
    link_id: str = Field(
        sa_column=Column(
            String(36),
            ForeignKey("urls.id", ondelete="CASCADE"),
            nullable=False,
            index=True
        )
    )
    clicked_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
    ip_address: Optional[str] = Field(
        default=None,
        sa_column=Column(String(45), nullable=True)  # IPv6 max length
    )
    user_agent: Optional[str] = Field(
        default=None,
        sa_column=Column(String(500), nullable=True)
    )
    referrer: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True)
    )
    device_type: Optional[str] = Field(
        default=None,
        sa_column=Column(String(20), nullable=True)
    )
    browser: Optional[str] = Field(
        default=None,
        sa_column=Column(String(50), nullable=True)
    )
