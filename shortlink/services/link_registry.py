"""
Link Registry

Durable store of short code mappings; the source of truth behind the
resolution cache.

Design Decisions:
- exists_by_short_code sees every link ever created, so retired codes are
  never handed out again
- find_by_short_code only returns active links
- The unique index on short_code is the authoritative collision check:
  create() turns the integrity violation into DuplicateShortCodeError
- Click increments are single atomic UPDATE statements
- Other database errors propagate unchanged
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from shortlink.core.exceptions import DuplicateShortCodeError
from shortlink.db.models import Link, utcnow

# Sentinel for "field not supplied" in partial updates (None is a valid expiry)
UNSET = object()


class LinkRegistry:
    """Persistence operations on Link records."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def exists_by_short_code(self, short_code: str) -> bool:
        """Return True if any link, active or retired, uses this code."""
        statement = select(select(Link.id).where(Link.short_code == short_code).exists())
        result = await self.session.execute(statement)
        return bool(result.scalar())

    async def create(
        self,
        short_code: str,
        original_url: str,
        owner_id: Optional[str] = None,
        title: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> Link:
        """
        Insert a new link.

        Raises:
            DuplicateShortCodeError: If the short code is already taken
                (the session is rolled back)
        """
        link = Link(
            short_code=short_code,
            original_url=original_url,
            owner_id=owner_id,
            title=title,
            expires_at=expires_at,
        )
        self.session.add(link)
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            raise DuplicateShortCodeError(short_code, original_error=e) from e

        return link

    async def find_by_short_code(self, short_code: str) -> Optional[Link]:
        """Return the active link for a code, or None."""
        statement = select(Link).where(Link.short_code == short_code, Link.is_active.is_(True))
        result = await self.session.execute(statement)
        return result.scalar_one_or_none()

    async def find_by_id(self, link_id: str) -> Optional[Link]:
        """Return a link by id regardless of state, or None."""
        return await self.session.get(Link, link_id)

    async def find_by_owner(self, owner_id: str, limit: int = 10, offset: int = 0) -> list[Link]:
        """Return an owner's links, newest first."""
        statement = (
            select(Link)
            .where(Link.owner_id == owner_id)
            .order_by(Link.created_at.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def count_by_owner(self, owner_id: str) -> int:
        statement = select(func.count()).select_from(Link).where(Link.owner_id == owner_id)
        result = await self.session.execute(statement)
        return result.scalar_one()

    async def update(
        self,
        link: Link,
        title=UNSET,
        is_active=UNSET,
        expires_at=UNSET,
    ) -> Link:
        """
        Apply a partial update. Only supplied fields change; updated_at is
        refreshed whenever anything does. Last writer wins.
        """
        changed = False
        if title is not UNSET:
            link.title = title
            changed = True
        if is_active is not UNSET:
            link.is_active = is_active
            changed = True
        if expires_at is not UNSET:
            link.expires_at = expires_at
            changed = True

        if changed:
            link.updated_at = utcnow()
            self.session.add(link)
            await self.session.flush()

        return link

    async def increment_click_count(self, link_id: str) -> None:
        """
        Increment the click counter atomically.

        Uses a database-level UPDATE rather than read-modify-write.
        Silently does nothing if the link doesn't exist.
        """
        statement = (
            update(Link)
            .where(Link.id == link_id)
            .values(click_count=Link.click_count + 1)
        )
        await self.session.execute(statement)
