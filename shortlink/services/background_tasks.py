"""
Background Task Helpers

Provides helper functions for background tasks that create their own database sessions.
Background tasks cannot use the endpoint's session as it's closed after the endpoint returns.
"""

import logging
from typing import Optional

from shortlink.db.session import async_session_maker
from shortlink.services.click_tracker import ClickTrackerService

logger = logging.getLogger(__name__)


async def record_click_background(
    short_code: str,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
    referrer: Optional[str] = None,
    session_maker=None,
) -> None:
    """
    Background task to count a click and log its event.

    Runs after the redirect response has been sent. Failures are logged and
    dropped; they never reach the client.

    Args:
        short_code: The short code that was resolved
        ip_address: IP address of the visitor
        user_agent: User agent string (optional)
        referrer: Referer header (optional)
        session_maker: Session factory, defaults to the application's
    """
    session_maker = session_maker or async_session_maker
    try:
        async with session_maker() as session:
            tracker = ClickTrackerService(session)
            click = await tracker.record_click(
                short_code=short_code,
                ip_address=ip_address,
                user_agent=user_agent,
                referrer=referrer,
            )
            await session.commit()
            if click is None:
                logger.debug(f"Skipped click for inactive short code {short_code}")
    except Exception as e:
        logger.error(
            f"Failed to record click for {short_code}: {str(e)}",
            exc_info=True
        )
