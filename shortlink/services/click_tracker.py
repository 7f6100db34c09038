"""
Click Tracking Service

Records redirect hits for analytics: bumps the link's denormalized counter
and appends a Click row with metadata derived from the request.

Design Decisions:
- Called from background tasks only, never on the redirect's critical path
- Device type and browser family are parsed with simple substring rules,
  good enough for dashboard breakdowns
- Best-effort: lost clicks are acceptable, counts are a metric not a ledger
"""

import re
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from shortlink.db.models import Click, Link
from shortlink.services.link_registry import LinkRegistry

_MOBILE_PATTERN = re.compile(r"mobile|android|iphone|ipad|ipod", re.IGNORECASE)
_TABLET_PATTERN = re.compile(r"ipad|tablet", re.IGNORECASE)


def parse_device_type(user_agent: Optional[str]) -> str:
    """Classify a User-Agent as desktop, mobile, tablet or unknown."""
    if not user_agent:
        return "unknown"
    if _TABLET_PATTERN.search(user_agent):
        return "tablet"
    if _MOBILE_PATTERN.search(user_agent):
        return "mobile"
    return "desktop"


def parse_browser(user_agent: Optional[str]) -> str:
    """Return the browser family named in a User-Agent."""
    if not user_agent:
        return "Unknown"
    # Order matters: Edge and Opera UAs also contain "Chrome" and "Safari"
    if "Chrome" in user_agent and "Edg" not in user_agent and "OPR" not in user_agent:
        return "Chrome"
    if "Safari" in user_agent and "Chrome" not in user_agent:
        return "Safari"
    if "Firefox" in user_agent:
        return "Firefox"
    if "Edg" in user_agent:
        return "Edge"
    if "Opera" in user_agent or "OPR" in user_agent:
        return "Opera"
    return "Unknown"


class ClickTrackerService:
    """
    Service for recording clicks on short links.

    This service is designed to be called asynchronously via background tasks
    to avoid blocking the redirect response.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.registry = LinkRegistry(session)

    async def record_click(
        self,
        short_code: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        referrer: Optional[str] = None,
    ) -> Optional[Click]:
        """
        Count a click and store its event.

        Returns:
            The stored Click, or None if the link is no longer active
            (it may have been deactivated after it was resolved)
        """
        link = await self.registry.find_by_short_code(short_code)
        if link is None:
            return None

        await self.registry.increment_click_count(link.id)
        return await self.log_click(link, ip_address, user_agent, referrer)

    async def log_click(
        self,
        link: Link,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        referrer: Optional[str] = None,
    ) -> Click:
        click = Click(
            link_id=link.id,
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
            referrer=referrer,
            device_type=parse_device_type(user_agent),
            browser=parse_browser(user_agent),
        )
        self.session.add(click)
        await self.session.flush()
        return click
