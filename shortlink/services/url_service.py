"""
URL Shortening Service

This service handles the core business logic for URL shortening:
- Validating, guarding and normalizing destination URLs
- Allocating short codes (custom alias or random with bounded retry)
- Persisting links and writing the mapping through to the cache
- Resolving short codes cache-first with database fallback
- Owner operations: read, list, update and soft-delete links

Design Decisions:
- Syntax is checked on the submitted URL, the SSRF guard on the normalized
  URL that actually gets stored
- The existence check before insert is an optimization only; the unique
  index in the registry is what prevents duplicate codes under concurrency
- The database commit happens before the cache write, so the cache never
  holds a mapping the database doesn't
- Resolution does not tell missing, retired and expired codes apart
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from shortlink.core.exceptions import (
    AliasTakenError,
    DuplicateShortCodeError,
    GenerationExhaustedError,
    InvalidAliasError,
    InvalidExpiryError,
    InvalidURLError,
    LinkNotFoundError,
    LinkOwnershipError,
    ShortCodeNotFoundError,
    UnsafeURLError,
)
from shortlink.core.validators import is_safe_url, is_valid_url, normalize_url
from shortlink.db.models import Link, as_utc, utcnow
from shortlink.services.code_generator import RESERVED_ALIASES, CodeGenerator, is_valid_custom_alias
from shortlink.services.link_registry import UNSET, LinkRegistry
from shortlink.services.resolution_cache import ResolutionCache

logger = logging.getLogger(__name__)

# Collision odds at 6+ characters make repeated failure a configuration problem
MAX_GENERATION_ATTEMPTS = 5


@dataclass(frozen=True)
class ShortenedLink:
    """Result of creating a short link."""
    short_code: str
    short_url: str
    original_url: str
    link: Link


class URLShorteningService:
    """
    Core business logic for URL shortening.

    Orchestrates validation, code generation, the link registry and the
    resolution cache. Separated from the API layer for testability.
    """

    def __init__(
        self,
        session: AsyncSession,
        cache: ResolutionCache,
        code_generator: CodeGenerator,
        base_url: str,
        cache_ttl: int,
    ):
        """
        Initialize the URL shortening service.

        Args:
            session: Database session
            cache: Resolution cache (may be backed by no Redis at all)
            code_generator: Shared generator built from ShortCodeConfig
            base_url: Prefix for assembled short URLs
            cache_ttl: Seconds a cached mapping survives
        """
        self.session = session
        self.registry = LinkRegistry(session)
        self.cache = cache
        self.code_generator = code_generator
        self.base_url = base_url.rstrip("/")
        self.cache_ttl = cache_ttl

    def build_short_url(self, short_code: str) -> str:
        return f"{self.base_url}/{short_code}"

    def _cache_ttl_for(self, link: Link) -> int:
        """Configured TTL, capped so the entry never outlives the link's expiry."""
        expires_at = as_utc(link.expires_at)
        if expires_at is None:
            return self.cache_ttl
        remaining = int((expires_at - utcnow()).total_seconds())
        return min(self.cache_ttl, remaining)

    def _prepare_url(self, url: str) -> str:
        """
        Validate and normalize a destination URL.

        Raises:
            InvalidURLError: If the URL is malformed, too long or not http(s)
            UnsafeURLError: If the URL points at a loopback or private host
        """
        candidate = url.strip() if isinstance(url, str) else url
        if not is_valid_url(candidate):
            raise InvalidURLError(
                url,
                reason="Invalid URL format. URL must start with http:// or https://"
            )

        normalized = normalize_url(candidate)
        if not is_valid_url(normalized):
            raise InvalidURLError(url, reason="URL is too long after normalization")

        if not is_safe_url(normalized):
            raise UnsafeURLError(url)

        return normalized

    async def _generate_unique_short_code(self) -> str:
        """
        Generate a random code not yet used by any link.

        Raises:
            GenerationExhaustedError: If every attempt collided
        """
        for attempt in range(1, MAX_GENERATION_ATTEMPTS + 1):
            short_code = self.code_generator.generate()
            if not await self.registry.exists_by_short_code(short_code):
                return short_code
            logger.warning(f"Short code collision on attempt {attempt}: {short_code}")

        logger.error(
            f"Short code generation exhausted after {MAX_GENERATION_ATTEMPTS} attempts "
            f"(alphabet size={self.code_generator.base}, "
            f"length={self.code_generator.default_length})"
        )
        raise GenerationExhaustedError(MAX_GENERATION_ATTEMPTS)

    async def create_short_link(
        self,
        url: str,
        custom_alias: Optional[str] = None,
        owner_id: Optional[str] = None,
        title: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> ShortenedLink:
        """
        Create a new short link.

        Args:
            url: The long URL to shorten
            custom_alias: Optional user-chosen code
            owner_id: Optional owning user
            title: Optional label
            expires_at: Optional expiry, must be in the future

        Returns:
            ShortenedLink with short_code, short_url and original_url

        Raises:
            InvalidURLError, UnsafeURLError: If the URL is rejected
            InvalidAliasError, AliasTakenError: If the alias is rejected
            InvalidExpiryError: If expires_at is not in the future
            GenerationExhaustedError: If no free random code was found
            DuplicateShortCodeError: If a concurrent request took the random
                code first (the caller may retry)
        """
        normalized_url = self._prepare_url(url)

        expires_at = as_utc(expires_at)
        if expires_at is not None and expires_at <= utcnow():
            raise InvalidExpiryError()

        if custom_alias:
            if not is_valid_custom_alias(custom_alias) or custom_alias in RESERVED_ALIASES:
                raise InvalidAliasError(custom_alias)
            if await self.registry.exists_by_short_code(custom_alias):
                raise AliasTakenError(custom_alias)
            short_code = custom_alias
        else:
            short_code = await self._generate_unique_short_code()

        try:
            link = await self.registry.create(
                short_code=short_code,
                original_url=normalized_url,
                owner_id=owner_id,
                title=title,
                expires_at=expires_at,
            )
        except DuplicateShortCodeError as e:
            if custom_alias:
                raise AliasTakenError(custom_alias) from e
            raise

        await self.session.commit()

        await self.cache.set_short_code(short_code, normalized_url, self._cache_ttl_for(link))

        logger.info(f"Created short code {short_code} (owner={owner_id or 'anonymous'})")

        return ShortenedLink(
            short_code=link.short_code,
            short_url=self.build_short_url(link.short_code),
            original_url=link.original_url,
            link=link,
        )

    async def resolve_short_code(self, short_code: str) -> str:
        """
        Resolve a short code to its destination URL.

        Cache hits return without touching the database.

        Raises:
            ShortCodeNotFoundError: If the code is unknown, retired or expired
        """
        cached = await self.cache.get_short_code(short_code)
        if cached:
            return cached

        link = await self.registry.find_by_short_code(short_code)
        if link is None or not link.is_resolvable():
            raise ShortCodeNotFoundError(short_code)

        await self.cache.set_short_code(short_code, link.original_url, self._cache_ttl_for(link))
        return link.original_url

    async def get_stats(self, short_code: str) -> Link:
        """
        Return the active link behind a code for statistics.

        Raises:
            ShortCodeNotFoundError: If no active link uses the code
        """
        link = await self.registry.find_by_short_code(short_code)
        if link is None:
            raise ShortCodeNotFoundError(short_code)
        return link

    async def get_link(self, link_id: str, owner_id: str) -> Link:
        """
        Load a link on behalf of its owner.

        Raises:
            LinkNotFoundError: If the id doesn't exist
            LinkOwnershipError: If the caller doesn't own the link
        """
        link = await self.registry.find_by_id(link_id)
        if link is None:
            raise LinkNotFoundError(link_id)
        if link.owner_id != owner_id:
            raise LinkOwnershipError(link_id)
        return link

    async def list_links(self, owner_id: str, page: int = 1, limit: int = 10) -> tuple[list[Link], int]:
        """Return one page of an owner's links and the owner's total count."""
        offset = (page - 1) * limit
        links = await self.registry.find_by_owner(owner_id, limit=limit, offset=offset)
        total = await self.registry.count_by_owner(owner_id)
        return links, total

    async def update_link(
        self,
        link_id: str,
        owner_id: str,
        title=UNSET,
        is_active=UNSET,
        expires_at=UNSET,
    ) -> Link:
        """
        Update title, active flag or expiry of an owned link.

        Changing the active flag or expiry drops the cached mapping so the
        next resolve re-reads the database.
        """
        link = await self.get_link(link_id, owner_id)

        if expires_at is not UNSET:
            expires_at = as_utc(expires_at)

        link = await self.registry.update(link, title=title, is_active=is_active, expires_at=expires_at)
        await self.session.commit()

        if is_active is not UNSET or expires_at is not UNSET:
            await self.cache.invalidate_short_code(link.short_code)

        return link

    async def delete_link(self, link_id: str, owner_id: str) -> Link:
        """
        Soft-delete an owned link. Its code stays reserved forever.
        """
        link = await self.get_link(link_id, owner_id)
        link = await self.registry.update(link, is_active=False)
        await self.session.commit()

        await self.cache.invalidate_short_code(link.short_code)
        logger.info(f"Deactivated short code {link.short_code}")
        return link
